"""Records for roles and their scope, as returned by the API.

A role is a named set of tokens.  The API reports the roles of an actor as
``RoleInActor`` records: the role itself plus the account or customer it is
held in.  A record with neither is a *global* role.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BasicAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class BasicCustomer(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    date_created: str = Field(alias="datecreated")
    date_modified: str = Field(alias="datemodified")


class Role(BaseModel):
    """A role and the tokens it grants.

    ``customer`` is the customer that owns the role definition; it does not
    say where the actor holds the role.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    customer: BasicCustomer | None = None
    tokens: list[str]


class RoleInActor(BaseModel):
    """A role held by an actor, with the account or customer it applies to."""

    model_config = ConfigDict(frozen=True)

    role: Role
    account: BasicAccount | None = None
    customer: BasicCustomer | None = None

    @property
    def is_global(self) -> bool:
        return self.account is None and self.customer is None
