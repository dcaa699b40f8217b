"""Postgres DDL for per-client response tables and the error log."""

from api_cache.services.cache_keys import response_table_name
from api_cache.services.error_log import ERROR_LOG_TABLE

_MAX_IDENTIFIER_LENGTH = 63


def response_table_ddl(client_name: str, compressed: bool) -> str:
    """Return ``CREATE TABLE`` and index statements for a client's table.

    Payload columns are ``bytea`` in compressed tables and ``text`` otherwise.
    """
    table = response_table_name(client_name, compressed)
    payload_type = "bytea" if compressed else "text"
    lookup_index = _index_name(table, "_client_endpoint_version_idx")
    expiry_index = _index_name(table, "_expires_at_idx")
    return f"""create table if not exists {table} (
    id bigint generated by default as identity primary key,
    key text not null unique,
    client text not null,
    version text,
    endpoint text not null,
    base_url text,
    full_url text,
    method text,
    attributes varchar(255),
    credits integer,
    cost double precision,
    request_params_summary text,
    request_headers {payload_type},
    request_body {payload_type},
    response_status_code integer,
    response_headers {payload_type},
    response_body {payload_type} not null,
    response_size integer not null default 0,
    response_time double precision,
    expires_at timestamptz,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now()
);
create index if not exists {lookup_index}
    on {table} (client, endpoint, version);
create index if not exists {expiry_index}
    on {table} (expires_at);
"""


def error_log_table_ddl(table: str = ERROR_LOG_TABLE) -> str:
    """Return ``CREATE TABLE`` and index statements for the API error log."""
    client_index = _index_name(table, "_api_client_error_type_idx")
    created_index = _index_name(table, "_created_at_idx")
    return f"""create table if not exists {table} (
    id bigint generated by default as identity primary key,
    api_client text not null,
    error_type text not null,
    log_level text not null,
    error_message text,
    api_message text,
    response_preview text,
    context_data jsonb,
    created_at timestamptz not null default now()
);
create index if not exists {client_index}
    on {table} (api_client, error_type);
create index if not exists {created_index}
    on {table} (created_at);
"""


def _index_name(table: str, suffix: str) -> str:
    return table[: _MAX_IDENTIFIER_LENGTH - len(suffix)] + suffix
