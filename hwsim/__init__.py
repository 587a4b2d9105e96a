"""
HW Tag Simulator
=================
File-backed emulation of instrument hardware registers ("tags")
for developing and testing gas-chromatograph control software
without the physical boards.

Simulator processes share a single tag file; each tag is a typed
value plus a write count that lets readers spot fresh data.
"""

__version__ = "1.0.0"
