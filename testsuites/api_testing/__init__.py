"""
Taiga API testing package: the client binding (``taiga``), its framework
(``framework``) and the live suites (``tests``).
"""
