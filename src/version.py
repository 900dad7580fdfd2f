"""
Glove Calibration Version

v0.1.0:
- Calibration check with out-of-bounds, matching and small-hand verdicts
- Quick and guided calibration sequences
- SenseGlove and Nova profile compilers
"""

__version__ = "0.1.0"
__author__ = "Glove Calibration Contributors"
__status__ = "Beta"
