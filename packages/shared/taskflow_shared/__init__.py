"""Schemas shared by the TaskFlow server and its clients."""
