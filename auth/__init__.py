"""auth/ -- Accounts, credentials and the session-token lifecycle for VidHub.

Layer rule: auth/ imports only stdlib + third-party libraries, media/ for the
upload protocol, and core/ for configuration types. It does NOT import from
api/. api/ imports from auth/, not the other way around.
"""
