"""HTTP and cron entry points returning `(status, body)`."""
