"""HR dashboard data layer."""
