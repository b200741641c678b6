"""
DevConnect Backend: Schemas
=============================

json_schemas: JSON-Schema documents used to validate incoming requests
everything else: Pydantic models describing what the API returns
"""
