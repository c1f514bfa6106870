from enum import Enum


class CollisionMode(Enum):
    SIMPLE   = "simple"     # halt and wait, never replan or yield
    ADVANCED = "advanced"   # priorities, wait escalation, deadlock scan


class VehicleState(Enum):
    IDLE    = "idle"
    MOVING  = "moving"
    WAITING = "waiting"


class TaskStatus(Enum):
    PENDING     = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED   = "completed"
    FAILED      = "failed"


class TaskRole(Enum):
    LEADER   = "leader"
    FOLLOWER = "follower"


class ErrorKind(Enum):
    VEHICLE_NOT_FOUND          = "vehicle_not_found"
    TASK_NOT_FOUND             = "task_not_found"
    INVALID_TASK_STATE         = "invalid_task_state"
    INVALID_DESTINATION_FORMAT = "invalid_destination_format"
    DESTINATION_OUT_OF_BOUNDS  = "destination_out_of_bounds"
    PATH_NOT_FOUND             = "path_not_found"
    CARGO_ALREADY_LOADED       = "cargo_already_loaded"
    CARGO_ABSENT               = "cargo_absent"
    STACK_HEIGHT_EXCEEDED      = "stack_height_exceeded"
    INSUFFICIENT_PARTICIPANTS  = "insufficient_participants"
    VEHICLE_NOT_READY          = "vehicle_not_ready"       # not stationary at its cell
    INVALID_COLLISION_MODE     = "invalid_collision_mode"
    NOT_INITIALIZED            = "not_initialized"
