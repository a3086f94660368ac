"""Bootstrap do container de DI (kink): configuração única e componentes do relay."""
from kink import di
from .settings import Settings
from .logging import configure_logging
from .messages import MessageTemplates
from .store import RedisStore
from ..connectors.telegram.bot_api_adapter import TelegramBotAdapter
from ..ports.interfaces import ChatPlatform, KeyValueStore
from ..repo.keys import KeySchema
from ..domain.services.link_service import LinkService
from ..domain.services.reply_service import ReplyService
from ..domain.services.outbox_service import OutboxService
from ..domain.services.notify_service import NotifyService
from ..bot.router import Router

def bootstrap_di(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    telegram: ChatPlatform | None = None,
) -> None:
    """Monta o grafo de componentes. `store`/`telegram` permitem substituir os adapters reais."""
    settings = settings or Settings()
    configure_logging(settings.log_level)
    di[Settings] = settings

    keys = KeySchema(namespace=settings.key_namespace, account_segment=settings.key_account_segment)
    store = store if store is not None else RedisStore.from_settings(settings)
    adapter = TelegramBotAdapter(settings)
    chat = telegram if telegram is not None else adapter
    templates = MessageTemplates(window_min=max(1, settings.reply_window_s // 60))

    di["store"] = store
    di[TelegramBotAdapter] = adapter
    di[MessageTemplates] = templates

    links = LinkService(store, keys)
    replies = ReplyService(store, window_s=settings.reply_window_s)
    outbox = OutboxService(store, keys, ttl_s=settings.message_ttl_s)
    di[LinkService] = links
    di[ReplyService] = replies
    di[OutboxService] = outbox
    di[NotifyService] = NotifyService(links, replies, chat, templates)
    di[Router] = Router(chat, links, replies, outbox, templates)
