"""
Green Corridor Service
Backend Application Package

Emergency vehicle green corridor engine: road-graph routing, arrival
prediction and exactly-once signal triggers, plus the signal safety
interlock that grants priority without ever letting conflicting
approaches run green together.
"""

__version__ = "1.0.0"
