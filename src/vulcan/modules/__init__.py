"""
Feature modules. Each module owns its models, schemas, repository,
service layer and routers.
"""
