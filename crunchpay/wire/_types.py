from typing import Any

from crunchpay.wire.codecs.rrc import RequestResponseCodec


# the fastapi compiler only understands HTTP triggers with RRC codecs
type Trigger = Any
type Codec = RequestResponseCodec | Any
type Exposure = tuple[Trigger, Codec]
