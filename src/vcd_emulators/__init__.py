"""
Cloud Director extension emulators.

Tooling for serving UI plugins inside the local ui-emulator host application,
generating dependency provenance reports and managing Cloud Director
authentication profiles.
"""

__version__ = "0.1.0"
