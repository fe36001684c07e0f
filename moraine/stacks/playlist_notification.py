"""
Playlist notification application stack.

A scheduled function reads the user master table and the stored Spotify
refresh token, posts newly added playlist tracks to Discord, then writes
back the last notified track and the rotated refresh token. A local test
user gets the same table access so the function can run from a laptop.
"""

from moraine.compute.resources import Architecture, Function
from moraine.config.provider import StackConfig
from moraine.core.stack import Stack
from moraine.identity.principals import ServiceRole, User
from moraine.storage.resources import AttributeType, table

STACK_NAME = "SpotifyPlaylistNotificationStack"
TABLE_PREFIX = "spotify-playlist-notification"

USER_TABLE_NAME = f"{TABLE_PREFIX}_user"
SPOTIFY_REFRESH_TOKEN_TABLE_NAME = f"{TABLE_PREFIX}_spotify_refresh_token"
LAST_NOTIFIED_TRACK_TABLE_NAME = f"{TABLE_PREFIX}_last_notified_track"

NOTIFY_CRON = "0 12 * * *"
NOTIFY_TIMEZONE = "Asia/Tokyo"


def build_stack(
    config: StackConfig | None = None,
    entry_point: str = "backend/target/lambda/backend/bootstrap.zip",
    environment: dict[str, str] | None = None,
) -> Stack:
    """
    Declare the playlist notification infrastructure.

    Args:
        config: Optional deployment config; its name overrides the default
        entry_point: Code artifact of the notifier function
        environment: Notifier environment (playlist id, Discord channel, ...)

    Returns:
        The populated Stack
    """
    stack = Stack(name=config.name if config else STACK_NAME, config=config)

    local_test_user = stack.register_principal(
        User("LocalTestUser", user_name=f"{TABLE_PREFIX}-local-test")
    )

    user_table = stack.register_resource(
        table(
            "UserTable",
            "name",
            sort_key="order",
            sort_type=AttributeType.NUMBER,
            table_name=USER_TABLE_NAME,
        )
    )
    stack.grant_read(local_test_user, user_table)

    refresh_token_table = stack.register_resource(
        table(
            "SpotifyRefreshTokenTable",
            "singleton_key",
            table_name=SPOTIFY_REFRESH_TOKEN_TABLE_NAME,
        )
    )
    stack.grant_read_write(local_test_user, refresh_token_table)

    last_notified_table = stack.register_resource(
        table(
            "LastNotifiedTrackTable",
            "singleton_key",
            table_name=LAST_NOTIFIED_TRACK_TABLE_NAME,
        )
    )
    stack.grant_read_write(local_test_user, last_notified_table)

    notifier_role = stack.register_principal(
        ServiceRole("NotifierRole", trusted_service="lambda.amazonaws.com")
    )
    stack.attach_managed_policy(notifier_role, "service-role/AWSLambdaBasicExecutionRole")

    notifier = stack.register_resource(
        Function(
            "NotifierFunction",
            entry_point=entry_point,
            architecture=Architecture.ARM_64,
            timeout_seconds=30,
            role_id="NotifierRole",
            environment=environment or {},
        )
    )
    stack.grant_read(notifier_role, user_table)
    stack.grant_read_write(notifier_role, refresh_token_table)
    stack.grant_read_write(notifier_role, last_notified_table)

    stack.bind_schedule(
        NOTIFY_CRON,
        NOTIFY_TIMEZONE,
        notifier,
        description="Notify new playlist tracks daily",
    )
    return stack
