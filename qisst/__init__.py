"""
QisstBook - Source Package

Bookkeeping for rotating savings circles (committee / qisst / ROSCA)
run by a single organizer.

DESIGN PRINCIPLES:
1. Engine functions are pure: collections in, collections out
2. Random draw suggests → Organizer confirms → System commits
3. Fail before mutating, never halfway through
4. Persistence is an explicit step after every mutation
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "QisstBook Team"
