from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class RedirectRules(BaseModel):
    enabled: bool = True
    status_code: Literal[301] = 301
    admin_path_prefixes: list[str] = Field(default_factory=lambda: ["admin", "api/admin"])
    reserved_system_paths: list[str] = Field(default_factory=list)
    defer_to_reserved_paths: bool = False

class NoticeRules(BaseModel):
    ttl_seconds: int = Field(default=45, gt=0)

class OpsRules(BaseModel):
    data_dir_required: bool = True
    required_env: list[str] = Field(default_factory=list)

class Rules(BaseModel):
    project: ProjectRules
    redirects: RedirectRules = Field(default_factory=RedirectRules)
    notices: NoticeRules = Field(default_factory=NoticeRules)
    ops: OpsRules = Field(default_factory=OpsRules)
