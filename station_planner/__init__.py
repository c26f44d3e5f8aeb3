"""
Station Planner

Interactive fire-station placement: station/incident ingestion, apparatus
counts, service-zone assignment and draggable map markers.
"""

from station_planner.session import PlannerSession
from station_planner.config import CONFIG

__all__ = ["PlannerSession", "CONFIG"]
