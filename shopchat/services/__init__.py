"""Service layer for ShopChat persistence."""
