"""Collaborators of the cart engine: money helpers and price sources."""
