from workshop_queue.scheduling.assignment import TechnicianAssignmentSelector, has_time_conflict
from workshop_queue.scheduling.workload import calculate_workloads, get_technician_workload

__all__ = [
    "TechnicianAssignmentSelector",
    "has_time_conflict",
    "calculate_workloads",
    "get_technician_workload",
]
