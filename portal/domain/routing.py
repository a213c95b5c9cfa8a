"""
Issue routing: which service provider gets notified for a new issue.

Candidates are the providers whose appliance-type list contains the
appliance's type, in list order. The policy picks one of them.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from portal.domain.entities import Appliance, Issue, ServiceProvider


def matching_providers(providers: Iterable[ServiceProvider], appliance_type: str) -> list[ServiceProvider]:
    return [provider for provider in providers if provider.services(appliance_type)]


class RoutingPolicy:
    """Base policy: first matching provider in list order."""

    name = "first"

    def choose(
        self,
        candidates: Sequence[ServiceProvider],
        appliance: Appliance,
        issues: Sequence[Issue],
    ) -> Optional[ServiceProvider]:
        return candidates[0] if candidates else None

    def route(
        self,
        providers: Iterable[ServiceProvider],
        appliance: Appliance,
        issues: Sequence[Issue] = (),
    ) -> Optional[ServiceProvider]:
        candidates = matching_providers(providers, appliance.type)
        if not candidates:
            return None
        return self.choose(candidates, appliance, issues)


class FirstMatchPolicy(RoutingPolicy):
    name = "first"


class RoundRobinPolicy(RoutingPolicy):
    """Cycle through the matching providers, one counter per appliance type."""

    name = "round_robin"

    def __init__(self) -> None:
        self._turns: dict[str, int] = {}

    def choose(self, candidates, appliance, issues):
        turn = self._turns.get(appliance.type, 0)
        self._turns[appliance.type] = turn + 1
        return candidates[turn % len(candidates)]


class LeastLoadedPolicy(RoutingPolicy):
    """Provider with the fewest open issues; ties go to list order."""

    name = "least_loaded"

    def choose(self, candidates, appliance, issues):
        load = {provider.name: 0 for provider in candidates}
        for issue in issues:
            if issue.is_open and issue.service_provider in load:
                load[issue.service_provider] += 1
        return min(candidates, key=lambda provider: load[provider.name])


ROUTING_POLICIES = {
    FirstMatchPolicy.name: FirstMatchPolicy,
    RoundRobinPolicy.name: RoundRobinPolicy,
    LeastLoadedPolicy.name: LeastLoadedPolicy,
}


def get_routing_policy(name: str | None) -> RoutingPolicy:
    key = (name or FirstMatchPolicy.name).strip().lower().replace("-", "_")
    try:
        return ROUTING_POLICIES[key]()
    except KeyError:
        raise ValueError(
            f"Unknown routing policy {name!r}; use one of: {', '.join(sorted(ROUTING_POLICIES))}"
        ) from None
