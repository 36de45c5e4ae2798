"""
Prompt rules — canned answers for interactive build tools.

A PromptRuleSet is an ordered list of trigger → response pairs. The
order correlates each matched trigger index with its response and is
the order in which triggers are tried against child output.
"""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, Field, model_validator


class PromptRule(BaseModel):
    """A literal trigger string and the line sent back when it appears."""

    trigger_pattern: str = Field(min_length=1)
    response_text: str


class PromptRuleSet(BaseModel):
    """Ordered, trigger-unique collection of prompt rules."""

    rules: list[PromptRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_triggers(self) -> PromptRuleSet:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.trigger_pattern in seen:
                raise ValueError(f"Duplicate prompt trigger: {rule.trigger_pattern!r}")
            seen.add(rule.trigger_pattern)
        return self

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> PromptRuleSet:
        """Build a rule set from a ``{trigger: response}`` mapping (insertion order)."""
        return cls(
            rules=[PromptRule(trigger_pattern=k, response_text=v) for k, v in mapping.items()]
        )

    def merged(self, overrides: Mapping[str, str] | PromptRuleSet | None) -> PromptRuleSet:
        """Return a new set with overrides applied.

        An override for an existing trigger replaces its response in
        place; new triggers are appended after the existing ones.
        """
        if not overrides:
            return self.model_copy(deep=True)
        if isinstance(overrides, PromptRuleSet):
            overrides = overrides.as_mapping()
        combined = self.as_mapping()
        combined.update(overrides)
        return PromptRuleSet.from_mapping(combined)

    def as_mapping(self) -> dict[str, str]:
        return {r.trigger_pattern: r.response_text for r in self.rules}

    @property
    def triggers(self) -> list[str]:
        return [r.trigger_pattern for r in self.rules]

    def response_for(self, index: int) -> str:
        """Response correlated with the trigger at ``index``."""
        return self.rules[index].response_text

    def __len__(self) -> int:
        return len(self.rules)
