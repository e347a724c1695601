# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""FlyGuard web application factory built on Starlette."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import BaseRoute

from flyguard.config.properties.csrf import CsrfProperties
from flyguard.config.properties.session import SessionProperties
from flyguard.core.config import Config
from flyguard.csrf.protection import CsrfProtection
from flyguard.logging.port import LoggingPort
from flyguard.logging.structlog_adapter import StructlogAdapter
from flyguard.session.adapters.memory import InMemorySessionStore
from flyguard.session.adapters.redis import RedisSessionStore
from flyguard.session.filter import SessionFilter
from flyguard.session.ports.outbound import SessionStore
from flyguard.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from flyguard.web.adapters.starlette.filters import CsrfFilter, RequestLoggingFilter
from flyguard.web.ordering import sort_filters
from flyguard.web.ports.filter import WebFilter


def create_session_store(props: SessionProperties) -> SessionStore:
    """Build the session store named by ``flyguard.session.store``."""
    if props.store == "redis":
        return RedisSessionStore.from_url(str(props.redis.get("url", "redis://localhost:6379/0")))
    if props.store != "memory":
        raise ValueError(f"Unknown session store '{props.store}' (expected 'memory' or 'redis')")
    return InMemorySessionStore()


def build_filters(config: Config, *, store: SessionStore | None = None) -> list[WebFilter]:
    """Assemble the session, CSRF and request-logging filters from *config*, in chain order."""
    session_props = config.bind(SessionProperties)
    csrf_props = config.bind(CsrfProperties)
    store = store if store is not None else create_session_store(session_props)

    protection = CsrfProtection.from_properties(
        csrf_props,
        backend=store,
        session_ttl=session_props.ttl,
    )
    filters: list[WebFilter] = [
        RequestLoggingFilter(),
        SessionFilter(
            store,
            cookie_name=session_props.cookie_name,
            ttl=session_props.ttl,
            secure=csrf_props.cookie.secure,
        ),
        CsrfFilter(
            protection,
            reject_status=csrf_props.reject_status,
            field_name=csrf_props.field_name,
        ),
    ]
    return sort_filters(filters)


def csrf_middleware(config: Config, *, store: SessionStore | None = None) -> Middleware:
    """Return the middleware entry to place in front of the application's routes."""
    return Middleware(WebFilterChainMiddleware, filters=build_filters(config, store=store))


def create_app(
    config: Config,
    routes: Sequence[BaseRoute] = (),
    *,
    store: SessionStore | None = None,
    extra_filters: Sequence[WebFilter] = (),
    configure_logging: bool = True,
    logging_adapter: LoggingPort | None = None,
    debug: bool = False,
    lifespan: Any = None,
) -> Starlette:
    """Create a Starlette application protected against CSRF.

    Includes:
    - logging configuration from ``flyguard.logging`` through *logging_adapter*
      (structlog by default, when configure_logging)
    - WebFilter chain: request logging, sessions, CSRF, + caller filters
    """
    if configure_logging:
        adapter: LoggingPort = logging_adapter or StructlogAdapter()
        adapter.configure(config)

    filters = sort_filters([*build_filters(config, store=store), *extra_filters])
    return Starlette(
        debug=debug,
        routes=list(routes),
        middleware=[Middleware(WebFilterChainMiddleware, filters=filters)],
        lifespan=lifespan,
    )
