from fastapi import APIRouter, Depends

from redirect_categories.services.corpus import get_corpus

router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(corpus=Depends(get_corpus)) -> dict[str, str]:
    # get_corpus raises CorpusUnavailableError (503) until the wiki is reachable.
    return {
        "status": "ready",
        "corpus": type(corpus).__name__,
        "category_namespace": corpus.localizer().namespace_name(),
    }
