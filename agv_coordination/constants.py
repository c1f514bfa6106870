# ============================================================
# MOTION
# ============================================================
DEFAULT_SPEED      = 2.0     # world units per second
ARRIVAL_TOLERANCE  = 0.05    # world units from the final waypoint
UNLOAD_FACING      = (0.0, 0.0, -1.0)   # every vehicle faces the unload area

# ============================================================
# COLLISION / DEADLOCK
# ============================================================
MAX_WAIT_TIME           = 5.0   # seconds blocked before escalating
DEADLOCK_CHECK_INTERVAL = 3.0   # min gap between wait-graph scans

# ============================================================
# PRIORITIES
# ============================================================
CARGO_PRIORITY_BOOST = 10   # added while a vehicle carries cargo
TASK_PRIORITY_BOOST  = 20   # base boost for collaborative task members

# ============================================================
# DEFAULT LAYOUT
# ============================================================
DEFAULT_GRID_WIDTH  = 8
DEFAULT_GRID_DEPTH  = 6
DEFAULT_GRID_HEIGHT = 3     # shelf levels; a stack may hold height + 1 items

# ============================================================
# HEADLESS / SWEEP
# ============================================================
TICK_DT = 0.05              # seconds per simulation tick

# ============================================================
# VIEWER
# ============================================================
CELL_PX       = 64
PANEL_WIDTH   = 300
FPS           = 30
SPEED_STEPS   = [0.5, 1.0, 2.0, 4.0, 8.0]

BG_COLOR        = (210, 215, 222)
CELL_COLOR      = (235, 238, 242)
RESERVED_COLOR  = (200, 225, 250)
OUTLINE_COLOR   = (175, 180, 188)
PANEL_BG        = (30, 30, 40)
PANEL_TEXT      = (200, 200, 210)
PANEL_HEADER    = (140, 160, 255)
PANEL_SEPARATOR = (60, 60, 80)
PANEL_GREEN     = (80, 220, 100)
PANEL_YELLOW    = (230, 200, 60)
PANEL_RED       = (230, 70, 70)
VEHICLE_COLOR   = (255, 60, 60)
WAITING_COLOR   = (255, 140, 0)
PATH_COLOR      = (0, 200, 0)
CARGO_COLOR     = (170, 135, 75)
