"""HTTP adapter for the shop-floor core."""
