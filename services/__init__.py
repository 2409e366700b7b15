"""Application services: aggregation, cross-collection mutations, input parsing."""
