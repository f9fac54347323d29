"""
Request controllers for the account flows.

Controllers take request data and return ``(data, status, headers)``. They
raise :class:`.exceptions.AccountError` for anything the caller did wrong;
the routes render those as JSON.
"""
