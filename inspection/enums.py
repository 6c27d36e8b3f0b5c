from enum import Enum


class VehicleAngle(str, Enum):
    FRONT = "front"
    REAR = "rear"
    DRIVER_SIDE = "driver_side"
    PASSENGER_SIDE = "passenger_side"
    ROOF = "roof"


class AssessmentPhase(str, Enum):
    PICKUP = "pickup"
    RETURN = "return"


class DamageSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class AssessmentStatus(str, Enum):
    PICKUP_IN_PROGRESS = "pickup_in_progress"
    PICKUP_COMPLETE = "pickup_complete"
    RETURN_IN_PROGRESS = "return_in_progress"
    COMPLETED = "completed"


# Canonical order, used for completeness checks and client display.
REQUIRED_ANGLES: tuple[VehicleAngle, ...] = tuple(VehicleAngle)
