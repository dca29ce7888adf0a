"""blog/ -- Blog entry domain model and repository for BlogEngine.

Layer rule: blog/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, web/, or auth/. The access policy decides who
may see drafts; the repository only applies the visibility flag it is given.
"""
