from collections.abc import Iterator, MutableMapping, Sequence
from pathlib import Path
import sys
from typing import Any, Callable

import pytest
import streamlit as st

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import WorkflowSettings  # noqa: E402
from state.config_store import ConfigStore  # noqa: E402
from state.draft_autosave import DraftAutosaveService  # noqa: E402
from state.session_store import InMemoryKeyValueStore, SessionStore  # noqa: E402
from wizard.bootstrap import WorkflowSession  # noqa: E402
from wizard.controller import WorkflowController  # noqa: E402
from wizard.deep_link import NavigationTarget  # noqa: E402

FIXED_EPOCH_SECONDS = 1_700_000_000.0


class _SessionDict(dict[str, object]):
    """Lightweight replacement for ``st.session_state`` during tests."""


class QueryParamStore(MutableMapping[str, str]):
    """In-memory stand-in for Streamlit's query param proxy."""

    def __init__(self, initial: dict[str, object] | None = None) -> None:
        self._data: dict[str, list[str]] = {}
        for key, value in (initial or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> str:
        return self._data[key][-1]

    def __setitem__(self, key: str, value: object) -> None:
        if isinstance(value, str):
            normalized = [value]
        elif isinstance(value, Sequence):
            normalized = [str(item) for item in value]
        else:
            normalized = [str(value)]
        self._data[key] = normalized

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get_all(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    def to_dict(self) -> dict[str, str]:
        return {key: values[-1] for key, values in self._data.items()}


class RecordingNavigator:
    """Navigator double that records hard-reload targets instead of rerunning."""

    def __init__(self) -> None:
        self.targets: list[NavigationTarget] = []

    def __call__(self, target: NavigationTarget) -> None:
        self.targets.append(target)


@pytest.fixture(autouse=True)
def _stub_streamlit_session_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace Streamlit's runtime-bound session state with a plain dictionary."""

    session_state = _SessionDict()
    monkeypatch.setattr(st, "session_state", session_state, raising=False)
    yield


@pytest.fixture(autouse=True)
def _stub_streamlit_query_params(monkeypatch: pytest.MonkeyPatch) -> QueryParamStore:
    store = QueryParamStore()
    monkeypatch.setattr(st, "query_params", store, raising=False)
    return store


@pytest.fixture
def query_params(_stub_streamlit_query_params: QueryParamStore) -> QueryParamStore:
    """The query param store Streamlit code sees during the test."""

    return _stub_streamlit_query_params


@pytest.fixture
def rerun_calls(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    calls: list[int] = []
    monkeypatch.setattr(st, "rerun", lambda: calls.append(1))
    return calls


@pytest.fixture
def session_state() -> MutableMapping[str, Any]:
    return st.session_state


@pytest.fixture
def config_store(session_state: MutableMapping[str, Any]) -> ConfigStore:
    return ConfigStore(session_state)


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore(InMemoryKeyValueStore())


@pytest.fixture
def controller(config_store: ConfigStore, session_state: MutableMapping[str, Any]) -> WorkflowController:
    return WorkflowController(config_store, session_state=session_state)


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def settings(tmp_path: Path) -> WorkflowSettings:
    return WorkflowSettings(storage_dir=tmp_path / "sessions")


@pytest.fixture
def make_session(
    settings: WorkflowSettings,
    session_store: SessionStore,
    navigator: RecordingNavigator,
    session_state: MutableMapping[str, Any],
) -> Callable[..., WorkflowSession]:
    """Build a :class:`WorkflowSession` wired to in-memory doubles."""

    def _factory(
        query: dict[str, object] | None = None,
        *,
        query_params: QueryParamStore | None = None,
        draft_service: DraftAutosaveService | None = None,
        store: SessionStore | None = None,
        clock: Callable[[], float] = lambda: FIXED_EPOCH_SECONDS,
    ) -> WorkflowSession:
        return WorkflowSession(
            settings=settings,
            session_store=store if store is not None else session_store,
            draft_service=draft_service,
            session_state=session_state,
            query_params=query_params if query_params is not None else QueryParamStore(query),
            navigator=navigator,
            sleep=lambda _seconds: None,
            clock=clock,
        )

    return _factory
