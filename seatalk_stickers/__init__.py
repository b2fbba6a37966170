"""SeaTalk Sticker Bridge: converts Telegram sticker sets into SeaTalk images.

WHY: SeaTalk has no way to import Telegram sticker or emoji sets. Users
mention the bot in a SeaTalk group with a t.me/addstickers link and get
every sticker of the set posted back as an image in a thread.

HOW: Two layers. ``api`` is an authenticated, rate-limited async client
for the SeaTalk Open API (token lifecycle, endpoint protocol, error
classification). ``server`` is the FastAPI webhook that dispatches inbound
events and runs conversion jobs in the background. ``telegram`` and
``convert`` are thin adapters around the Telegram Bot API and the
ffmpeg/gifsicle/lottie tool chain.

RULES:
- Every outbound SeaTalk call goes through the api package
- Webhook responses never wait for a conversion job
- One failing sticker never aborts a job
"""

__version__ = "0.1.0"
