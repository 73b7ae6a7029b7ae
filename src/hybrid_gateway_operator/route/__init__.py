"""Route status: listener matching, reference checks and the shared status map."""

from .shared_status import SharedRouteStatusMap, get_shared_status_map, status_map_key

__all__ = ["SharedRouteStatusMap", "get_shared_status_map", "status_map_key"]
