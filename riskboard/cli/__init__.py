"""Command line interface for the risk dashboard aggregator."""
