"""
LMS Portal: a single-user learning-management portal.

Students browse and enroll in courses and submit assignments; instructors
create courses and assignments and grade submissions. All state lives in a
local key/value storage so a restart never loses an acknowledged action.
"""

__version__ = "1.0.0"
__author__ = "LMS Portal Development Team"
__description__ = "Single-user learning-management portal with local persistence"
