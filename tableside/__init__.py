"""
                Tableside Service Coordinator

Live table-service backend for restaurants: serving groups, table
allocation and portioning, late-service alerts and realtime sync
between every connected floor client.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
