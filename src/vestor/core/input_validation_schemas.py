from __future__ import annotations

from pydantic import BaseModel, conint, constr

from vestor.core.constants import U64_MAX


class InitRegistryInput(BaseModel):
    registry_id: constr(strip_whitespace=True, min_length=1)
    nonce: conint(ge=0, le=255) = 0
    asset_id: constr(strip_whitespace=True, min_length=1)


class MintInput(BaseModel):
    account: constr(strip_whitespace=True, min_length=1)
    amount: conint(gt=0, le=U64_MAX)


class CreateTicketInput(BaseModel):
    grantor: constr(strip_whitespace=True, min_length=1)
    beneficiary: constr(strip_whitespace=True, min_length=1)
    cliff_days: conint(ge=0, le=U64_MAX) = 0
    vesting_days: conint(ge=0, le=U64_MAX)
    # Zero passes here so the lifecycle controller reports AmountMustBeGreaterThanZero
    amount: conint(ge=0, le=U64_MAX)
    irrevocable: bool = False


class TicketActionInput(BaseModel):
    ticket_id: constr(strip_whitespace=True, min_length=64, max_length=64)
    caller: constr(strip_whitespace=True, min_length=1)
