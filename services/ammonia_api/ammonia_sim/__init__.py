"""Steady-state stoichiometric mass balance for an ammonia plant front end."""
