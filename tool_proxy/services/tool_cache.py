"""In-memory registry of every backend tool, keyed by unique identifier."""

import logging
from typing import Dict, Iterable, List, Optional

from tool_proxy.infra.error_handler import ToolCollisionError
from tool_proxy.models.tool import CachedTool, ToolDefinition, ToolRoute, make_unique_id

logger = logging.getLogger(__name__)

COLLISION_REPLACE = "replace"
COLLISION_REJECT = "reject"


class ToolCache:
    """Keeps backend tool definitions server-side, out of the upstream context.

    Writes only happen while backends register (startup) and on clear
    (teardown). Each backend's batch is applied with a single dict update,
    so readers never observe a half-registered backend.
    """

    def __init__(self, collision_policy: str = COLLISION_REPLACE):
        if collision_policy not in (COLLISION_REPLACE, COLLISION_REJECT):
            raise ValueError(f"Unknown collision policy: {collision_policy}")
        self.collision_policy = collision_policy
        self._tools: Dict[str, CachedTool] = {}

    def register(self, backend_id: str, definitions: Iterable[ToolDefinition]) -> None:
        """
        Register tools from one backend under ``backend__original`` identifiers.

        With the "replace" policy an identifier that already exists is
        overwritten (last write wins) and a warning is logged. With "reject"
        a collision raises before anything is stored.

        Raises:
            ToolCollisionError: On collision under the "reject" policy
        """
        batch: Dict[str, CachedTool] = {}
        for definition in definitions:
            unique_id = make_unique_id(backend_id, definition.name)
            existing = batch.get(unique_id) or self._tools.get(unique_id)
            if existing is not None:
                if self.collision_policy == COLLISION_REJECT:
                    raise ToolCollisionError(unique_id, existing.backend_id, backend_id)
                logger.warning(
                    f"Tool identifier {unique_id} from {backend_id} replaces the one from {existing.backend_id}",
                    extra={"tool": unique_id, "backend": backend_id, "previous_backend": existing.backend_id},
                )
            batch[unique_id] = CachedTool(
                backend_id=backend_id,
                original_name=definition.name,
                unique_id=unique_id,
                definition=definition.model_copy(update={"name": unique_id}),
            )

        self._tools.update(batch)

    def all_definitions(self) -> List[ToolDefinition]:
        """All cached definitions (unique names), in registration order."""
        return [cached.definition for cached in self._tools.values()]

    def lookup(self, unique_id: str) -> Optional[CachedTool]:
        return self._tools.get(unique_id)

    def resolve_route(self, unique_id: str) -> Optional[ToolRoute]:
        """Return the (backend, original name) pair for a unique identifier."""
        cached = self._tools.get(unique_id)
        if cached is None:
            return None
        return cached.route

    def tools_for_backend(self, backend_id: str) -> List[str]:
        return [uid for uid, cached in self._tools.items() if cached.backend_id == backend_id]

    def list_identifiers(self) -> List[str]:
        return list(self._tools.keys())

    @property
    def size(self) -> int:
        return len(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, unique_id: object) -> bool:
        return unique_id in self._tools

    def clear(self) -> None:
        self._tools.clear()
