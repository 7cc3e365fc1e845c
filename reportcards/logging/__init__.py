"""Console logging and the JSON Lines diagnostic log."""
