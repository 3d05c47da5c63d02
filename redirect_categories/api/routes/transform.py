from fastapi import APIRouter, Depends

from redirect_categories.core.config import Settings, get_settings
from redirect_categories.core.security import get_machine_principal, require_scopes
from redirect_categories.schemas.transform import PreSaveTransformRequest, PreSaveTransformResult, ReplacementOut
from redirect_categories.services.corpus import get_corpus
from redirect_categories.services.resolver import RedirectResolver
from redirect_categories.services.rewriter import InlineRewriter

router = APIRouter()


@router.post("/pre-save", response_model=PreSaveTransformResult)
async def pre_save_transform(
    payload: PreSaveTransformRequest,
    principal=Depends(get_machine_principal),
    corpus=Depends(get_corpus),
    settings: Settings = Depends(get_settings),
) -> PreSaveTransformResult:
    require_scopes(principal, {"transform:write"})

    page = corpus.get_page_by_text(payload.title)
    language = page.language if page is not None else None
    rewriter = InlineRewriter(
        RedirectResolver(pages=corpus, redirects=corpus, restrictions=corpus),
        namespace_names=corpus.localizer().namespace_names(language),
        keep_empty_annotation=settings.inline_keep_empty_annotation,
    )
    outcome = rewriter.rewrite_text(payload.text)
    return PreSaveTransformResult(
        text=outcome.text,
        changed=outcome.changed,
        replacements=[
            ReplacementOut(original=item.original, replacement=item.replacement, target=item.target.key)
            for item in outcome.replacements
        ],
    )
