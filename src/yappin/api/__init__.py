"""HTTP API for the Yappin' core."""
