from fastapi import APIRouter, Depends, status

from redirect_categories.core.security import get_machine_principal, require_scopes
from redirect_categories.schemas.transform import PageSavedAccepted, PageSavedEvent
from redirect_categories.services.corpus import get_corpus
from redirect_categories.services.resolver import RedirectResolver
from redirect_categories.services.store import get_store
from redirect_categories.services.trigger import ProtectedRedirectTrigger

router = APIRouter()


@router.post("/page-saved", response_model=PageSavedAccepted, status_code=status.HTTP_202_ACCEPTED)
async def page_saved(
    payload: PageSavedEvent,
    principal=Depends(get_machine_principal),
    corpus=Depends(get_corpus),
    store=Depends(get_store),
) -> PageSavedAccepted:
    require_scopes(principal, {"hooks:write"})

    page = corpus.get_page_by_text(payload.title)
    if page is None:
        return PageSavedAccepted(enqueued=False, reason="page_not_found")

    trigger = ProtectedRedirectTrigger(
        resolver=RedirectResolver(pages=corpus, redirects=corpus, restrictions=corpus),
        queue=store,
    )
    decision = trigger.on_page_saved(page)
    return PageSavedAccepted(
        enqueued=decision.enqueued,
        reason=decision.reason,
        job_id=decision.job_id,
        category_key=decision.category_key,
    )
