"""
Constants for the Hough transform engine.
"""

import math

# Line parameter space: theta covers [-pi/2, pi], rho is sampled every sqrt(2)
THETA_START = -math.pi / 2.0
THETA_RANGE = 3.0 * math.pi / 2.0
DELTA_RHO = math.sqrt(2.0)

# Accumulators are uint8, votes saturate here
MAX_VOTES = 255

# Number of strongest distinct vote values kept by segment_threshold
DEFAULT_NB_LINES = 6

# Below this, sin/cos are treated as zero when intersecting image borders
TRIG_EPSILON = 1e-6

# Minimum value for a pixel to vote for circles
CIRCLE_PIXEL_MIN_VALUE = 0.001

# Detection defaults
DEFAULT_SEGMENT_MIN_VOTES = 2
DEFAULT_CIRCLE_RADIUS = 2.0
DEFAULT_CIRCLE_VOTE_CRITERIA = 1

# Circle drawing (cv2.circle)
CIRCLE_VALUE = 255
CIRCLE_THICKNESS = 1
CIRCLE_LINE_TYPE = 8
