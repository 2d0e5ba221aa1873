"""
Localization constants.

Defaults mirror config/matching.yaml. Numerical epsilons are stability
choices, not model parameters.
"""

# =============================================================================
# LOCAL MAP
# =============================================================================

# ROI box offsets around the local map origin [xmin, xmax, ymin, ymax, zmin, zmax]
BOX_FILTER_SIZE_DEFAULT = (-150.0, 150.0, -150.0, 150.0, -150.0, 150.0)

# Rebuild once the pose is closer than this to either box edge on any axis
LOCAL_MAP_MARGIN_DEFAULT = 50.0

# Local map origin used before any initial pose is known
LOCAL_MAP_START_ORIGIN = (0.0, 0.0, 0.0)

# =============================================================================
# INITIALIZATION
# =============================================================================

# Absolute samples needed (strictly more than) before declaring initialized
INIT_ABSOLUTE_SAMPLES_DEFAULT = 3

# =============================================================================
# FILTERS
# =============================================================================

VOXEL_LEAF_SIZE_GLOBAL_MAP = (0.9, 0.9, 0.9)
VOXEL_LEAF_SIZE_LOCAL_MAP = (0.5, 0.5, 0.5)
VOXEL_LEAF_SIZE_FRAME = (1.5, 1.5, 1.5)

# =============================================================================
# REGISTRATION
# =============================================================================

NDT_RESOLUTION_DEFAULT = 1.0
NDT_STEP_SIZE_DEFAULT = 0.1
NDT_TRANS_EPS_DEFAULT = 0.01
NDT_MAX_ITER_DEFAULT = 30
NDT_MIN_POINTS_PER_CELL = 5
# Covariance eigenvalues are floored at this fraction of the largest one
NDT_EIGEN_RATIO_FLOOR = 0.01
# Levenberg damping on the Gauss-Newton normal equations
NDT_DAMPING = 1e-6

ICP_MAX_CORR_DIST_DEFAULT = 1.2
ICP_TRANS_EPS_DEFAULT = 0.01
ICP_MAX_ITER_DEFAULT = 30
# Minimum correspondences for a well-posed SE(3) fit
N_MIN_SE3_CORRESPONDENCES = 3

# =============================================================================
# SCAN CONTEXT
# =============================================================================

SC_NUM_RINGS_DEFAULT = 20
SC_NUM_SECTORS_DEFAULT = 60
SC_MAX_RADIUS_DEFAULT = 80.0
SC_LIDAR_HEIGHT_DEFAULT = 2.0
SC_NUM_CANDIDATES_DEFAULT = 10
SC_DISTANCE_THRESHOLD_DEFAULT = 0.2
SC_MIN_POINTS_DEFAULT = 10

# =============================================================================
# NUMERICS
# =============================================================================

# Guard for norms in cosine similarity
COSINE_EPSILON = 1e-12
