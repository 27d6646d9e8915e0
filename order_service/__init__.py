"""Order Service — coordinates order creation across customer, inventory, payment and notification services."""
