"""Counter Schemas — logged counter increments from the attendance subsystem.

Invariants:
    - Exactly one of `key` (structured) or `legacy_key` (colon string) is given
    - legacy_key is parsed here, at the boundary; malformed keys are a 400
"""

from pydantic import BaseModel, Field, model_validator

from gatekeeper.core.counter_keys import CounterKey, parse_legacy_counter_key
from gatekeeper.core.domain_types import CounterCategory, CounterOutcome


class CounterKeyBody(BaseModel):
    scope: str = Field(min_length=1, max_length=64)
    category: CounterCategory
    subject: str = Field("", max_length=64)
    outcome: CounterOutcome = CounterOutcome.NONE


class CounterIncrement(BaseModel):
    key: CounterKeyBody | None = None
    legacy_key: str | None = Field(None, max_length=200)
    amount: int = 1

    @model_validator(mode="after")
    def check_one_key(self) -> "CounterIncrement":
        if (self.key is None) == (self.legacy_key is None):
            raise ValueError("give exactly one of key or legacy_key")
        if self.legacy_key is not None:
            parse_legacy_counter_key(self.legacy_key)
        return self

    def counter_key(self) -> CounterKey:
        if self.legacy_key is not None:
            return parse_legacy_counter_key(self.legacy_key)
        return CounterKey(
            self.key.scope, self.key.category, self.key.subject, self.key.outcome,
        )


class CounterResponse(BaseModel):
    scope: str
    category: str
    subject: str
    outcome: str
    value: int

    model_config = {"from_attributes": True}
