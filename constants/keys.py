class StateKeys:
    """Keys for data stored in ``st.session_state``."""

    CONFIG = "workflow.config"
    WORKFLOW_STATE = "workflow.state"
    SESSION_ID_CACHE = "workflow.session_id"
    WORKFLOW_SESSION = "workflow.session"
    MOUNT_RESULT = "workflow.mount_result"
    LAST_OUTCOME = "workflow.last_outcome"


class StorageKeys:
    """Keys used in the durable key-value session store."""

    ACTIVE_SESSION = "active_session"
    SESSION_PREFIX = "session_"

    @staticmethod
    def session(session_id: str) -> str:
        return f"{StorageKeys.SESSION_PREFIX}{session_id}"


class QueryParams:
    """Deep-link parameters read from the app location."""

    STEP = "step"
    FORCE = "force"
    GAME = "game"
    TEMPLATE = "template"


class ConfigFields:
    """Top-level fields of the game configuration object."""

    GAME_ID = "gameId"
    DISPLAY_NAME = "displayName"
    GAME_TYPE = "gameType"
    SELECTED_GAME_TYPE = "selectedGameType"
    INSTANT_GAME_TYPE = "instantGameType"
    THEME = "theme"
    WORKFLOW = "workflow"
