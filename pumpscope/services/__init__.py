"""Service layer"""

from .pump_data import PumpDataService, get_pump_data_service

__all__ = ["PumpDataService", "get_pump_data_service"]
