"""Operator CLI for ShopChat."""
