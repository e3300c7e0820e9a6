from __future__ import annotations

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from lingolearn.config import Settings
from lingolearn.db.models import WordCategory, new_word
from lingolearn.skills.mastery import MasteryLevel
from lingolearn.skills.schemas import WordCreateRequest, WordOut
from lingolearn.skills.study_service import WordSort, sort_words

from .deps import Stores, get_app_settings, get_stores


router = APIRouter(prefix="/api/words", tags=["words"])


@router.get("", response_model=List[WordOut])
async def list_words(
    stores: Annotated[Stores, Depends(get_stores)],
    category: Optional[WordCategory] = None,
    mastery: Optional[MasteryLevel] = None,
    favorites: bool = False,
    search: Optional[str] = Query(default=None, max_length=128),
    sort: Optional[WordSort] = None,
) -> List[WordOut]:
    """
    List words, optionally filtered by category, mastery, favourites or a
    case-insensitive match on the English or Chinese text, and ordered by
    `sort` (store order when omitted).
    """
    words = await stores.items.list()
    if sort is not None:
        words = sort_words(words, sort)
    needle = search.strip().lower() if search else None

    out: List[WordOut] = []
    for word in words:
        if category is not None and word.category != category.value:
            continue
        if mastery is not None and word.mastery_level != mastery.value:
            continue
        if favorites and not word.is_favorite:
            continue
        if needle and needle not in word.english.lower() and needle not in word.chinese.lower():
            continue
        out.append(WordOut.model_validate(word))
    return out


@router.post("", response_model=WordOut, status_code=status.HTTP_201_CREATED)
async def create_word(
    payload: WordCreateRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> WordOut:
    word = new_word(
        english=payload.english.strip(),
        chinese=payload.chinese.strip(),
        category=payload.category.value,
        phonetic=payload.phonetic,
        part_of_speech=payload.part_of_speech,
        example_sentence=payload.example_sentence,
        example_translation=payload.example_translation,
        difficulty=payload.difficulty,
        ease_factor=settings.sm2.default_ease_factor,
    )
    word = await stores.items.upsert(word)
    return WordOut.model_validate(word)


@router.get("/{word_id}", response_model=WordOut)
async def get_word(
    word_id: str,
    stores: Annotated[Stores, Depends(get_stores)],
) -> WordOut:
    word = await stores.items.get(word_id)
    if word is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Word not found",
        )
    return WordOut.model_validate(word)


@router.post("/{word_id}/favorite", response_model=WordOut)
async def toggle_word_favorite(
    word_id: str,
    stores: Annotated[Stores, Depends(get_stores)],
) -> WordOut:
    word = await stores.items.get(word_id)
    if word is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Word not found",
        )
    word.is_favorite = not word.is_favorite
    word = await stores.items.upsert(word)
    return WordOut.model_validate(word)
