"""Facilities portal: appliances, service providers and issue reporting."""
