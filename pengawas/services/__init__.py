"""
Use cases of the supervisor backend.

Services receive the record store through their constructor; routers call
services (or the store for plain CRUD) and never read the JSON file directly.
"""
