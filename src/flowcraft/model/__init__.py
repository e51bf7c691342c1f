"""
The MODEL layer contains pure data structures and collaborators.
It has NO knowledge of the editor widgets or the synchronization logic.
It deals with document state, files, templates and export.
"""
