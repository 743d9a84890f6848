"""Settings, logging and timing helpers shared across pagesync."""
