"""Web front end for the service management demo."""
