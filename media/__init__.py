"""media/ -- Upload backends for user-supplied images.

Layer rule: media/ imports only stdlib + third-party libraries (and
core.config for type hints). It knows nothing about users or tokens.
"""
