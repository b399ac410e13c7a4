from hatchr.models.alert import NotifyCursor, TokenAlertState
from hatchr.models.base import Base
from hatchr.models.market import Market
from hatchr.models.social import SocialSignal
from hatchr.models.subscriber import NotificationSubscriber

__all__ = [
    "Base",
    "Market",
    "TokenAlertState",
    "NotifyCursor",
    "SocialSignal",
    "NotificationSubscriber",
]
