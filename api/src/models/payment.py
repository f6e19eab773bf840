"""Payment gateway schemas."""

from pydantic import AliasChoices, Field

from api.src.models.common import CamelModel


class OrderRequest(CamelModel):
    booking_id: str = Field(..., min_length=1)


class VerifyRequest(CamelModel):
    """
    Checkout callback payload.

    The gateway's checkout widget reports snake_case keys
    (``razorpay_order_id``); camelCase is accepted too.
    """

    booking_id: str = Field(..., min_length=1)
    razorpay_order_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("razorpay_order_id", "razorpayOrderId")
    )
    razorpay_payment_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("razorpay_payment_id", "razorpayPaymentId")
    )
    razorpay_signature: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("razorpay_signature", "razorpaySignature")
    )
