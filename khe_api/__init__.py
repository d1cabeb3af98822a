# khe_api/__init__.py
"""
Kent Hack Enough backend: users, applications, tickets, points leaderboard.

Usage (development):
    uvicorn khe_api.main:app --reload

Configuration is read from the environment / a .env at the repository root
(see khe_api/config.py).
"""
