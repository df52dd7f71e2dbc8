"""HTTP surface for recipe import."""
