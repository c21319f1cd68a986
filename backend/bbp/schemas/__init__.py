"""
Pydantic request/response contracts. JSON field names are camelCase
(see CamelModel); Python attributes stay snake_case.
"""
