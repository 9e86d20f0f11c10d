from typing import Optional

from pydantic import BaseModel


class CheckoutCallbackRequest(BaseModel):
    reference: str
    status: str
    transaction: Optional[str] = None

    model_config = {
        'json_schema_extra': {
            'example': {
                'reference': 'CHK-01936d8f-5e73-7c4e-a9c5-123456789abc',
                'status': 'success',
                'transaction': '4099260516',
            }
        }
    }


class CheckoutCancelRequest(BaseModel):
    reference: str


class OrderApprovalRequest(BaseModel):
    status: str = 'approved'
    payer_id: Optional[str] = None


class CallbackAcceptedResponse(BaseModel):
    accepted: bool
    reference: str
    duplicate: bool = False
