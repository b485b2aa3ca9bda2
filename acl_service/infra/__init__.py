"""Infrastructure: logging and database wiring."""
