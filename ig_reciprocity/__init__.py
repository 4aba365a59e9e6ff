"""Follower/following reconciliation for Instagram accounts."""
