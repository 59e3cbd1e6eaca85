from __future__ import annotations

import logging
from typing import Callable, List, Optional

import requests
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from openai import OpenAIError
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from pantry_chef import config
from pantry_chef.ai import AIClient
from pantry_chef.errors import ExtractionError, RecipeServiceError, ValidationError
from pantry_chef.forum import register_forum_routes
from pantry_chef.models import ensure_schema
from pantry_chef.pipeline import RecipePipeline
from pantry_chef.recipe_store import RecipeStore
from pantry_chef.schemas import (
    FavouriteOut,
    FavouriteUpdate,
    GetRecipeRequest,
    RecipeOut,
    ScrapeOut,
    ScrapeRequest,
)
from pantry_chef.scraper import fetch_page
from pantry_chef.synthesizer import RecipeSynthesizer

log = logging.getLogger("pantry_chef.app")

SCRAPE_HINT = "The website may be blocking requests or the URL is invalid."
CACHE_HEADER = "X-Recipe-Cache"

router = APIRouter()


# ---------------- Dependencies ----------------


def get_pipeline(request: Request) -> RecipePipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise RuntimeError("pipeline not initialized. Check app startup wiring.")
    return pipeline


def get_store(request: Request) -> RecipeStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("store not initialized. Check app startup wiring.")
    return store


# ---------------- API ----------------


@router.get("/get-recipes", response_model=List[RecipeOut])
def list_recipes(store: RecipeStore = Depends(get_store)):
    return store.list_recent()


@router.get("/get-popular-recipes", response_model=List[RecipeOut])
def list_popular_recipes(store: RecipeStore = Depends(get_store)):
    return store.list_popular()


@router.get("/get-favourite-recipes", response_model=List[RecipeOut])
def list_favourite_recipes(store: RecipeStore = Depends(get_store)):
    return store.list_favourites()


@router.post("/scrape-recipe", response_model=ScrapeOut)
def scrape_recipe(body: ScrapeRequest, pipeline: RecipePipeline = Depends(get_pipeline)):
    url = (body.url or "").strip()
    if not url:
        raise ValidationError("URL is required.")

    try:
        ingredients = pipeline.scrape(url)
    except ExtractionError as e:
        if e.status_code == 400:
            raise
        log.warning("No ingredients found at %s", url)
        raise HTTPException(status_code=500, detail=f"{e} {SCRAPE_HINT}")
    except (requests.RequestException, OpenAIError) as e:
        log.error("Error scraping recipe from %s: %s", url, e)
        raise HTTPException(status_code=500, detail=f"Failed to scrape recipe. {SCRAPE_HINT}")
    except Exception:
        log.exception("Unexpected error scraping recipe from %s", url)
        raise HTTPException(status_code=500, detail=f"Failed to scrape recipe. {SCRAPE_HINT}")
    return ScrapeOut(ingredients=ingredients)


@router.post("/get-recipe", response_model=RecipeOut)
def get_recipe(
    body: GetRecipeRequest,
    response: Response,
    pipeline: RecipePipeline = Depends(get_pipeline),
):
    if not body.ingredients:
        raise ValidationError("Ingredients are required and must be an array.")

    try:
        record, cached = pipeline.generate(body.ingredients, body.constraints())
    except ValidationError:
        raise
    except Exception as e:
        log.exception("Error generating recipe")
        raise HTTPException(status_code=500, detail=f"Failed to generate recipe: {e}")
    response.headers[CACHE_HEADER] = "hit" if cached else "miss"
    return record


@router.post("/recipes/{recipe_id}/favourite", response_model=FavouriteOut)
def set_favourite(recipe_id: int, body: FavouriteUpdate, store: RecipeStore = Depends(get_store)):
    if body.is_favourite is None:
        raise ValidationError("isFavourite is required and must be a boolean.")

    record = store.set_favourite(recipe_id, body.is_favourite)
    if record is None:
        raise HTTPException(status_code=404, detail="Recipe not found")

    state = "added to" if record.is_favourite else "removed from"
    return FavouriteOut(success=True, message=f"Recipe {state} favourites.")


# ---------------- Errors ----------------


def _error(status_code: int, message) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecipeServiceError)
    async def service_error(request: Request, exc: RecipeServiceError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(exc.status_code, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def body_error(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error(400, f"Invalid request: {problems}")

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        log.exception("%s %s failed", request.method, request.url.path)
        return _error(500, "Internal server error")


# ---------------- App ----------------


def create_app(
    engine: Optional[Engine] = None,
    ai: Optional[AIClient] = None,
    fetch: Optional[Callable[[str], str]] = None,
) -> FastAPI:
    if engine is None:
        engine = create_engine(config.database_url(), pool_pre_ping=True)
    if ai is None:
        ai = AIClient()

    app = FastAPI(title="Pantry Chef")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    store = RecipeStore(engine)
    app.state.engine = engine
    app.state.store = store
    app.state.pipeline = RecipePipeline(
        store=store,
        ai=ai,
        synthesizer=RecipeSynthesizer(ai),
        fetch=fetch or fetch_page,
    )

    @app.on_event("startup")
    def startup():
        ensure_schema(engine)
        log.info("Startup complete")

    app.include_router(router)
    register_forum_routes(app, engine)
    register_error_handlers(app)
    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=config.PORT)
