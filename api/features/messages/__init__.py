"""Messages feature: nested and flat message routes plus message search."""
