"""Kinship social networking backend."""
