"""Dependency resolver - parses constraints and computes a deterministic load order.

Resolution is pure: it reads a snapshot of descriptors and never touches
lifecycle state. Callers re-run it whenever the descriptor set changes.
"""

import heapq
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from termkit.plugins.errors import (
    CyclicDependency,
    DependencyUnresolved,
    MalformedConstraint,
    MissingDependency,
    ResolutionError,
    VersionConflict,
)
from termkit.plugins.manifest import ID_PATTERN, VERSION_PATTERN

if TYPE_CHECKING:
    from termkit.plugins.manifest import PluginDescriptor

logger = logging.getLogger(__name__)

SUPPORTED_OPERATORS = ("==", "!=", ">=", "<=", "~=", ">", "<")

_CLAUSE_PATTERN = re.compile(r"^(==|!=|>=|<=|~=|>|<)\s*(\d+(?:\.\d+)*(?:\.\*)?)$")


@dataclass(frozen=True)
class DependencyConstraint:
    """A parsed 'id@versionConstraint' requirement."""

    plugin_id: str
    clauses: Tuple[Tuple[str, str], ...] = ()
    raw: str = ""

    @property
    def specifier(self) -> SpecifierSet:
        return SpecifierSet(",".join(op + version for op, version in self.clauses))

    @property
    def requirement(self) -> str:
        """Printable form of the version requirement."""
        if not self.clauses:
            return "any version"
        return ",".join(op + version for op, version in self.clauses)

    def is_satisfied_by(self, version: str) -> bool:
        if not self.clauses:
            return True
        # Exact pins compare the version text, not the normalised PEP 440 value
        if any(op == "==" and VERSION_PATTERN.match(pin) and pin != version for op, pin in self.clauses):
            return False
        try:
            return self.specifier.contains(Version(version), prereleases=True)
        except InvalidVersion:
            return False


def parse_constraint(text: str, plugin_id: Optional[str] = None) -> DependencyConstraint:
    """Parse a dependency string.

    Accepted forms:
        ``base_utility@1.0.0``           exact match
        ``base_utility@>=1.0.0,<2.0.0``  range operators (==, !=, >=, <=, >, <, ~=)
        ``base_utility``                 any version

    Raises:
        MalformedConstraint: If the string does not follow the grammar
    """
    if not isinstance(text, str):
        raise MalformedConstraint(plugin_id, repr(text), "constraint must be a string")

    raw = text.strip()
    dep_id, sep, requirement = raw.partition("@")
    dep_id = dep_id.strip()
    requirement = requirement.strip()

    if not ID_PATTERN.match(dep_id):
        raise MalformedConstraint(plugin_id, raw, f"invalid plugin id '{dep_id}'")
    if sep and not requirement:
        raise MalformedConstraint(plugin_id, raw, "missing version after '@'")

    clauses: List[Tuple[str, str]] = []
    if requirement:
        if VERSION_PATTERN.match(requirement):
            clauses.append(("==", requirement))
        else:
            for part in requirement.split(","):
                match = _CLAUSE_PATTERN.match(part.strip())
                if not match:
                    raise MalformedConstraint(plugin_id, raw, f"unsupported operator syntax '{part.strip()}'")
                clauses.append((match.group(1), match.group(2)))
        try:
            SpecifierSet(",".join(op + version for op, version in clauses))
        except InvalidSpecifier as e:
            raise MalformedConstraint(plugin_id, raw, str(e)) from e

    return DependencyConstraint(plugin_id=dep_id, clauses=tuple(clauses), raw=raw)


def parse_dependencies(descriptor: "PluginDescriptor") -> List[DependencyConstraint]:
    return [parse_constraint(dep, descriptor.id) for dep in descriptor.dependencies]


def dependency_ids(descriptor: "PluginDescriptor") -> List[str]:
    """Ids a descriptor depends on, tolerating malformed constraints."""
    ids = []
    for dep in descriptor.dependencies:
        try:
            dep_id = parse_constraint(dep, descriptor.id).plugin_id
        except MalformedConstraint:
            dep_id = str(dep).partition("@")[0].strip()
        if dep_id and dep_id not in ids:
            ids.append(dep_id)
    return ids


@dataclass
class Resolution:
    """Outcome of resolving a descriptor set.

    ``order`` lists every resolvable plugin, dependencies first; ``failures``
    maps each unresolvable plugin to the reason.
    """

    order: List[str] = field(default_factory=list)
    failures: Dict[str, ResolutionError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def root_error(self) -> Optional[ResolutionError]:
        """First failure that is a cause rather than a consequence."""
        if not self.failures:
            return None
        for pid in sorted(self.failures):
            if not isinstance(self.failures[pid], DependencyUnresolved):
                return self.failures[pid]
        return self.failures[sorted(self.failures)[0]]


class DependencyResolver:
    """Builds the dependency graph and sorts it topologically.

    Ties between plugins with no ordering constraint are broken by
    ascending id so that the same descriptor set always yields the same order.
    """

    def resolve(self, descriptors: Mapping[str, "PluginDescriptor"]) -> Resolution:
        failures: Dict[str, ResolutionError] = {}
        graph: Dict[str, List[DependencyConstraint]] = {}

        for pid in sorted(descriptors):
            try:
                graph[pid] = parse_dependencies(descriptors[pid])
            except MalformedConstraint as e:
                failures[pid] = e

        for pid in sorted(graph):
            error = self._check_constraints(pid, graph[pid], descriptors)
            if error is not None:
                failures[pid] = error
        for pid in failures:
            graph.pop(pid, None)

        self._propagate(graph, failures)

        order, leftover = self._topological_sort(graph)
        if leftover:
            self._explain_leftover(leftover, graph, failures)

        if failures:
            logger.debug(f"Resolution failures: {sorted(failures)}")
        return Resolution(order=order, failures=failures)

    def resolve_order(self, descriptors: Mapping[str, "PluginDescriptor"]) -> List[str]:
        """Compute the load order for a full descriptor set.

        Raises:
            ResolutionError: The root-cause failure if any plugin is unresolvable
        """
        resolution = self.resolve(descriptors)
        error = resolution.root_error()
        if error is not None:
            raise error
        return resolution.order

    @staticmethod
    def _check_constraints(
        pid: str,
        constraints: List[DependencyConstraint],
        descriptors: Mapping[str, "PluginDescriptor"],
    ) -> Optional[ResolutionError]:
        for constraint in constraints:
            target = descriptors.get(constraint.plugin_id)
            if target is None:
                return MissingDependency(pid, constraint.plugin_id)
            if not constraint.is_satisfied_by(target.version):
                return VersionConflict(pid, constraint.plugin_id, constraint.requirement, target.version)
        return None

    @staticmethod
    def _propagate(graph: Dict[str, List[DependencyConstraint]], failures: Dict[str, ResolutionError]) -> None:
        # Dependents of unresolvable plugins are unresolvable too
        changed = True
        while changed:
            changed = False
            for pid in sorted(graph):
                blocked = next((c.plugin_id for c in graph[pid] if c.plugin_id in failures), None)
                if blocked is not None:
                    failures[pid] = DependencyUnresolved(pid, blocked)
                    del graph[pid]
                    changed = True

    @staticmethod
    def _topological_sort(graph: Dict[str, List[DependencyConstraint]]) -> Tuple[List[str], List[str]]:
        remaining = {pid: len({c.plugin_id for c in constraints}) for pid, constraints in graph.items()}
        dependents: Dict[str, List[str]] = {pid: [] for pid in graph}
        for pid, constraints in graph.items():
            for dep in {c.plugin_id for c in constraints}:
                dependents[dep].append(pid)

        ready = [pid for pid, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: List[str] = []
        while ready:
            pid = heapq.heappop(ready)
            order.append(pid)
            for dependent in dependents[pid]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)

        placed = set(order)
        leftover = sorted(pid for pid in graph if pid not in placed)
        return order, leftover

    def _explain_leftover(
        self,
        leftover: List[str],
        graph: Dict[str, List[DependencyConstraint]],
        failures: Dict[str, ResolutionError],
    ) -> None:
        nodes = set(leftover)
        edges = {pid: sorted({c.plugin_id for c in graph[pid]} & nodes) for pid in leftover}

        for component in self._strongly_connected(leftover, edges):
            members = set(component)
            start = min(component)
            if len(component) == 1 and start not in edges[start]:
                continue
            path = self._cycle_path(start, members, edges)
            cycle = path if len(path) == len(members) else sorted(members)
            error = CyclicDependency(cycle)
            for pid in component:
                failures[pid] = error
            logger.warning(str(error))

        # Whatever is left only waits on a cycle
        for pid in leftover:
            if pid not in failures:
                blocked = next(dep for dep in edges[pid])
                failures[pid] = DependencyUnresolved(pid, blocked)

    @staticmethod
    def _strongly_connected(nodes: Iterable[str], edges: Dict[str, List[str]]) -> List[List[str]]:
        """Tarjan's algorithm over the leftover subgraph."""
        index: Dict[str, int] = {}
        lowlink: Dict[str, int] = {}
        stack: List[str] = []
        on_stack: Set[str] = set()
        components: List[List[str]] = []
        counter = [0]

        def visit(node: str) -> None:
            index[node] = lowlink[node] = counter[0]
            counter[0] += 1
            stack.append(node)
            on_stack.add(node)
            for succ in edges[node]:
                if succ not in index:
                    visit(succ)
                    lowlink[node] = min(lowlink[node], lowlink[succ])
                elif succ in on_stack:
                    lowlink[node] = min(lowlink[node], index[succ])
            if lowlink[node] == index[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(sorted(component))

        for node in sorted(nodes):
            if node not in index:
                visit(node)
        return components

    @staticmethod
    def _cycle_path(start: str, members: Set[str], edges: Dict[str, List[str]]) -> List[str]:
        """Longest simple cycle through start, stopping once it covers the whole component."""
        best: List[str] = [start]

        def walk(path: List[str]) -> None:
            nonlocal best
            for succ in edges[path[-1]]:
                if succ == start and len(path) > len(best):
                    best = list(path)
                elif succ in members and succ not in path:
                    walk(path + [succ])
                    if len(best) == len(members):
                        return

        walk([start])
        return best
