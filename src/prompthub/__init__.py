"""Prompt Hub badge evaluation and leaderboard engine."""
