"""Client-side companions of the Connection Manager: status polling, actions and the connection card."""
