"""
FlowCraft Studio
================
Desktop editor for Mermaid diagrams with a live preview.
"""
__version__ = "0.1.0"
