"""HTTP middleware for the searchmetrics API."""
