"""
League API routes.

All routers are mounted under /api/v1 by tennis_league.main.
"""
