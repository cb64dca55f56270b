"""
Deal Room Back Office
Repository layer.

Repositories own queries and row construction. They flush but never
commit; the service layer decides transaction boundaries.
"""
