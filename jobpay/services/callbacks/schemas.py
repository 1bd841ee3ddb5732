"""Shapes of the asynchronous notifications the gateway posts back."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _GatewayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CallbackItem(_GatewayModel):
    name: str = Field(alias="Name")
    value: Any = Field(default=None, alias="Value")


class CallbackMetadata(_GatewayModel):
    items: list[CallbackItem] = Field(default_factory=list, alias="Item")


class StkCallback(_GatewayModel):
    merchant_request_id: str = Field(alias="MerchantRequestID", min_length=1)
    checkout_request_id: str | None = Field(default=None, alias="CheckoutRequestID")
    result_code: int = Field(alias="ResultCode")
    result_desc: str | None = Field(default=None, alias="ResultDesc")
    metadata: CallbackMetadata | None = Field(default=None, alias="CallbackMetadata")

    def metadata_value(self, name: str) -> Any:
        if self.metadata is None:
            return None
        for item in self.metadata.items:
            if item.name == name:
                return item.value
        return None


class StkCallbackBody(_GatewayModel):
    stk_callback: StkCallback = Field(alias="stkCallback")


class StkCallbackEnvelope(_GatewayModel):
    """`{"Body": {"stkCallback": {...}}}` posted to the job-payment callback URL."""

    body: StkCallbackBody = Field(alias="Body")


class ResultParameter(_GatewayModel):
    key: str = Field(alias="Key")
    value: Any = Field(default=None, alias="Value")


class ResultParameters(_GatewayModel):
    parameters: list[ResultParameter] = Field(default_factory=list, alias="ResultParameter")

    @field_validator("parameters", mode="before")
    @classmethod
    def _single_parameter(cls, value):
        # The gateway sends a bare object when there is only one parameter.
        if isinstance(value, dict):
            return [value]
        return value


class B2CResult(_GatewayModel):
    result_type: int | None = Field(default=None, alias="ResultType")
    result_code: int | None = Field(default=None, alias="ResultCode")
    result_desc: str | None = Field(default=None, alias="ResultDesc")
    originator_conversation_id: str | None = Field(default=None, alias="OriginatorConversationID")
    conversation_id: str = Field(alias="ConversationID", min_length=1)
    transaction_id: str | None = Field(default=None, alias="TransactionID")
    result_parameters: ResultParameters | None = Field(default=None, alias="ResultParameters")

    def parameter(self, key: str) -> Any:
        if self.result_parameters is None:
            return None
        for parameter in self.result_parameters.parameters:
            if parameter.key == key:
                return parameter.value
        return None


class B2CResultEnvelope(_GatewayModel):
    """`{"Result": {...}}` posted to the B2C result and queue-timeout URLs."""

    result: B2CResult = Field(alias="Result")


ACCEPTED = {"ResultCode": 0, "ResultDesc": "Accepted"}

# Outcomes of applying one callback.
APPLIED = "APPLIED"
DUPLICATE = "DUPLICATE"
