from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ConnectionTarget:
    url: str
    username: str
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class SyncJob:
    label: str
    source: ConnectionTarget
    source_max_query: str
    source_select_query: str
    destination: ConnectionTarget
    dest_max_query: str
    dest_insert_query: str
    disabled: bool = False
    select_id_field_index: int = 1
    source_paging_size: int = 0
