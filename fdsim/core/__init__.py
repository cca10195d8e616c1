"""Core fdsim types: simulation document models, events and schedules."""
