"""Core simulation primitives (zones, stability, combo, power-ups, scoring, events).

Kept free of FastAPI and Redis concerns so it can be driven by API routes, the
session clock, and tests alike.
"""
