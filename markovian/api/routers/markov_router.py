"""
Markov chain router: train, generate, merge and inspect in-memory chains.
"""
import itertools
import random
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from markovian.config import settings
from markovian.services.errors import DegenerateDistributionError, MarkovChainError
from markovian.services.markov import MarkovChain
from markovian.utils.logger import log_info, log_warning

router = APIRouter(prefix="/markov", tags=["markov"])

Level = Literal["char", "word"]


@dataclass
class CachedModel:
    chain: MarkovChain
    level: Level


# In-memory model cache (CPU-friendly)
MODEL_CACHE: Dict[str, CachedModel] = {}


class TrainRequest(BaseModel):
    corpus: List[str]
    level: Level = "char"
    memory: int = Field(default=settings.MARKOV_MEMORY, ge=1, le=8)
    max_tokens: int = Field(default=settings.MARKOV_MAX_TOKENS, ge=1)
    model_name: str = "default"


class GenerateRequest(BaseModel):
    model_name: str = "default"
    length: int = Field(default=50, ge=1, le=settings.MAX_GENERATE_LENGTH)
    seed: Optional[int] = Field(default=None, description="Seed for reproducible output")
    prefix: Optional[str] = Field(default=None, description="Text whose last tokens start the window")


class MergeRequest(BaseModel):
    target: str
    source: str


def tokenize(corpus: List[str], level: Level) -> List[str]:
    if level == "char":
        return list("\n".join(corpus))
    return [word for line in corpus for word in line.split()]


def detokenize(tokens: List[str], level: Level) -> str:
    return "".join(tokens) if level == "char" else " ".join(tokens)


def _get(name: str) -> CachedModel:
    entry = MODEL_CACHE.get(name)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"model '{name}' not found, train first")
    return entry


@router.post("/train")
async def train(req: TrainRequest):
    tokens = tokenize(req.corpus, req.level)
    if not tokens:
        raise HTTPException(status_code=400, detail="corpus is empty")

    chain = MarkovChain(train=tokens, memory=req.memory, max_tokens=req.max_tokens)
    try:
        # Build eagerly so an unusable corpus fails here, not on generate
        chain.tensor
    except MarkovChainError as e:
        log_warning("[MARKOV] Training rejected", model=req.model_name, error=str(e))
        raise HTTPException(status_code=422, detail=str(e))

    MODEL_CACHE[req.model_name] = CachedModel(chain=chain, level=req.level)
    log_info(
        "[MARKOV] Trained model",
        model=req.model_name,
        tokens=len(tokens),
        memory=req.memory,
        size=chain.size,
    )
    return {
        "ok": True,
        "model": req.model_name,
        "memory": chain.memory,
        "size": chain.size,
    }


@router.post("/generate")
async def generate(req: GenerateRequest):
    entry = _get(req.model_name)
    rng = random.Random(req.seed) if req.seed is not None else None
    prefix = tokenize([req.prefix], entry.level) if req.prefix else None

    try:
        sampler = entry.chain.sample(rng=rng, prefix=prefix)
    except (MarkovChainError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    tokens: List[str] = []
    truncated = False
    try:
        for token in itertools.islice(sampler, req.length):
            tokens.append(token)
    except DegenerateDistributionError as e:
        # Stream reached a context with no observed continuation
        truncated = True
        log_info("[MARKOV] Generation truncated", model=req.model_name, tokens=len(tokens), error=str(e))
    except MarkovChainError as e:
        # e.g. a merge grew the vocabulary past the tensor limit
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "ok": True,
        "data": {
            "text": detokenize(tokens, entry.level),
            "tokens": len(tokens),
            "truncated": truncated,
        },
    }


@router.post("/merge")
async def merge(req: MergeRequest):
    target = _get(req.target)
    source = _get(req.source)
    if target.level != source.level:
        raise HTTPException(status_code=400, detail="cannot merge chains with different token levels")

    target.chain.merge(source.chain)
    return {"ok": True, "model": req.target, "size": target.chain.size}


@router.get("/models/{model_name}")
async def model_info(model_name: str):
    entry = _get(model_name)
    chain = entry.chain
    return {
        "ok": True,
        "data": {
            "model": model_name,
            "level": entry.level,
            "memory": chain.memory,
            "max_tokens": chain.max_tokens,
            "size": chain.size,
            "windows": len(chain.counter),
            "cached_contexts": len(chain.dists),
        },
    }
