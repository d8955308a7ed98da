"""HTTP API for Dice Creator."""
