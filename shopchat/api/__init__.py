"""FastAPI application package for ShopChat."""
