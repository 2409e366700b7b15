"""Pure domain model for the shop: products, sales, purchases."""
