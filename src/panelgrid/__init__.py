"""panelgrid - resizable panel grid layout engine"""

__version__ = "0.1.0"
