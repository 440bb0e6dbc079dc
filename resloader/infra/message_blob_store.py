"""Store des blobs de messages des modules.

Un blob est l'objet JSON `{clé: texte}` des messages déclarés par un module, pour une langue. Les blobs
sont mis en cache dans le cache objet; la clé inclut une empreinte de la liste des clés pour qu'un
module qui change de messages obtienne immédiatement un nouveau blob.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import TYPE_CHECKING

from resloader.core.constants import TTL_WEEK
from resloader.infra.content_repo import JSONMessageRepository
from resloader.infra.object_cache import ObjectCache

if TYPE_CHECKING:
    from resloader.domain.module import Module


class MessageBlobStore:
    """Construit et met en cache les blobs de messages (par module et langue)."""

    def __init__(self, messages: JSONMessageRepository, cache: ObjectCache, ttl: int = TTL_WEEK):
        """Initialise le store avec le catalogue de messages et le cache objet."""
        self.messages = messages
        self.cache = cache
        self.ttl = ttl

    def _keys(self, module: Module) -> list[str]:
        # Une clé peut apparaître plusieurs fois dans la déclaration.
        return list(dict.fromkeys(module.source.get_messages()))

    def _cache_key(self, module: Module, lang: str, keys: list[str]) -> str:
        digest = hashlib.sha1(json.dumps(keys).encode("utf-8")).hexdigest()[:12]
        return self.cache.make_key("resourceloader-messageblob", module.name, lang, digest)

    def get_blob(self, module: Module, lang: str) -> str:
        """Blob JSON des messages de `module` pour `lang`."""
        keys = self._keys(module)
        return self.cache.get_with_set_callback(
            self._cache_key(module, lang, keys),
            self.ttl,
            lambda: json.dumps(self.messages.get_messages(keys, lang), ensure_ascii=False),
        )

    def get_blobs(self, modules: Mapping[str, Module], lang: str) -> dict[str, str]:
        """Blobs de plusieurs modules (ceux sans messages sont omis)."""
        return {
            name: self.get_blob(module, lang)
            for name, module in modules.items()
            if module.source.get_messages()
        }

    def clear(self, module: Module, lang: str) -> None:
        """Invalide le blob d'un module pour une langue."""
        self.cache.delete(self._cache_key(module, lang, self._keys(module)))
