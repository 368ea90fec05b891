"""Use-case layer coordinating domain objects and ports.

Modules here never import ``requests``; transport failures arrive as typed
``ApiError`` instances and leave as ``UseCaseError`` codes.
"""
