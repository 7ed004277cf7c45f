"""
Planbook Backend Package
========================

Answer-sheet grading and lesson auto-scheduling core for Planbook.

Structure:
- services/: Normalization, extraction, grading and slot-finding logic
- routes/: Flask API blueprints wrapping the services
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
