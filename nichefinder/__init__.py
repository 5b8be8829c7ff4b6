"""Rank-and-rent niche discovery."""
