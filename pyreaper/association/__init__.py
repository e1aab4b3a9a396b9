"""
Marker regression, permutation and bootstrap for QTL mapping
"""

from .scan import REAPER_Regression
from .permutation import REAPER_Permutation
from .bootstrap import REAPER_Bootstrap

__all__ = ['REAPER_Regression', 'REAPER_Permutation', 'REAPER_Bootstrap']
