"""
Boxmark - a desktop bounding box annotation editor.

Built with PyQt6. Draw, select, move, resize, label and delete rectangular
annotations over an image fitted to the window, and save them as JSON.
"""

__version__ = "1.0.0"
__author__ = "Boxmark Team"
