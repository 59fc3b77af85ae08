"""Anchor time-block scheduling backend."""
