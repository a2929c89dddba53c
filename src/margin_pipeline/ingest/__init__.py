"""Input readers and the static product code lookup."""
