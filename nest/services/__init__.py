"""Domain services for listings, inventory, bookings, messaging and reviews."""
