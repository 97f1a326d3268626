"""Persistence stores for users, sessions, threads, comments and likes.

Every store function opens its own ``get_db_session()`` block and returns
plain dicts, so nothing outside this package handles ORM instances.
"""
