from fastapi import APIRouter, Depends

from app.api.v1.auth import require_admin
from app.api.v1.schemas import ApiKeyListSchema, ApiKeySchema, IssuedKeySchema, IssueKeyRequestSchema
from app.application.use_cases.api_keys import ApiKeyRegistry
from app.wiring.dependencies import get_api_key_registry

router = APIRouter(prefix="/keys", tags=["keys"], dependencies=[Depends(require_admin)])


@router.post("", response_model=IssuedKeySchema, status_code=201)
def issue_key(
    req: IssueKeyRequestSchema,
    registry: ApiKeyRegistry = Depends(get_api_key_registry),
):
    raw_key, api_key = registry.issue(req.name)
    return IssuedKeySchema(**ApiKeySchema.from_entity(api_key).model_dump(), api_key=raw_key)


@router.get("", response_model=ApiKeyListSchema)
def list_keys(registry: ApiKeyRegistry = Depends(get_api_key_registry)):
    return ApiKeyListSchema(keys=[ApiKeySchema.from_entity(k) for k in registry.list_keys()])


@router.post("/{key_id}/revoke", response_model=ApiKeySchema)
def revoke_key(key_id: str, registry: ApiKeyRegistry = Depends(get_api_key_registry)):
    return ApiKeySchema.from_entity(registry.revoke(key_id))
