"""Habit, streak, and analytics services.

Submodules are imported explicitly (``from habitstreak.services.streaks import
StreakEngine``); the repository layer depends on ``day_window`` so nothing is
imported eagerly here.
"""
