"""
Request schemas
Field presence is checked in the route handlers, so required fields are
Optional here and only the types are enforced by pydantic.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

VariableValue = Union[str, int, float, bool]


class VariableCreate(BaseModel):
    """Body for creating a variable"""
    key: Optional[str] = None
    value: Optional[VariableValue] = None
    description: Optional[str] = None
    variable_type: str = "string"

    def missing_fields(self) -> List[str]:
        """Names of required fields that are absent, null or empty"""
        missing = []
        if self.key is None or self.key == "":
            missing.append("key")
        if self.value is None or self.value == "":
            missing.append("value")
        return missing


class SubscriptionCreate(BaseModel):
    """Body for creating a subscription"""
    plan: str = "trial"


class WelcomeVariable(BaseModel):
    """Variable created alongside a new subscription"""
    key: str = Field(min_length=1)
    value: VariableValue
    description: str = ""


class WorkflowSubscriptionCreate(BaseModel):
    """Body for creating a subscription with welcome variables and a workflow"""
    model_config = ConfigDict(populate_by_name=True)

    plan: str = "trial"
    welcome_variables: Optional[List[WelcomeVariable]] = Field(default=None, alias="welcomeVariables")
    n8n_url: Optional[str] = Field(default=None, alias="n8nUrl")
    n8n_api_key: Optional[str] = Field(default=None, alias="n8nApiKey")

    def wants_workflow(self) -> bool:
        return bool(self.n8n_url and self.n8n_api_key)
