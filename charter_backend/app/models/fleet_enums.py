"""
Fleet-related enumerations.
"""

import enum


class VehicleCategory(str, enum.Enum):
    """Vehicle category enumeration (typical seat range in comments)."""
    BIG_BUS = "BIG_BUS"  # 40-60 seats
    MEDIUM_BUS = "MEDIUM_BUS"  # 25-35 seats
    HIACE = "HIACE"  # 12-16 seats
    ELF = "ELF"  # 14-19 seats
    MPV = "MPV"  # 6-8 seats


class OwnershipKind(str, enum.Enum):
    """Who owns the vehicle."""
    OWNED = "OWNED"  # Company fleet
    PARTNER = "PARTNER"  # Vendor / subcontracted vehicle


class AssignmentStatus(str, enum.Enum):
    """Trip assignment status enumeration."""
    SCHEDULED = "SCHEDULED"  # Vehicle reserved, trip not started
    IN_PROGRESS = "IN_PROGRESS"  # Vehicle on the road
    COMPLETED = "COMPLETED"  # Trip done
    CANCELLED = "CANCELLED"  # Soft-deleted, never blocks anything


# Legal assignment moves. COMPLETED and CANCELLED rows are kept as the record.
ASSIGNMENT_TRANSITIONS = {
    AssignmentStatus.SCHEDULED: frozenset({AssignmentStatus.IN_PROGRESS, AssignmentStatus.CANCELLED}),
    AssignmentStatus.IN_PROGRESS: frozenset({AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED}),
    AssignmentStatus.COMPLETED: frozenset(),
    AssignmentStatus.CANCELLED: frozenset(),
}

# Display order of categories, largest vehicles first.
CATEGORY_RANK = {category: rank for rank, category in enumerate(VehicleCategory)}
