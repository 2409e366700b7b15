"""Persistence layer: storage backends, record codec and the record store."""
