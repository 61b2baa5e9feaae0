"""
Extração de crowd level a partir do HTML renderizado da SERP.

Estratégia (sem XPath):
1. Localizar o landmark "Popular times" (ausente = sem widget, retorna None)
2. Localizar o elemento da hora atual (data-hour) ou o selecionado (aria-checked)
3. Classificar o texto de lotação por regras de substring
4. Extrair a frase "People typically spend ..." (tempo médio)
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from bs4 import BeautifulSoup, Tag

from .models import CrowdLevel, CrowdLevelData

logger = logging.getLogger(__name__)

POPULAR_TIMES_PATTERN = re.compile(r"popular times", re.IGNORECASE)
BUSY_PATTERN = re.compile(r"busy|usually", re.IGNORECASE)
TIME_SPENT_PATTERN = re.compile(r"people typically spend", re.IGNORECASE)
PERCENTAGE_PATTERN = re.compile(r"(\d{1,3})\s*%")
# "not busy", "not too busy", "not very busy"
NOT_BUSY_PATTERN = re.compile(r"\bnot\s+(?:\w+\s+)?busy\b")

BUSY_PERCENTAGE_THRESHOLD = 67
MODERATE_PERCENTAGE_THRESHOLD = 33


def classify_busyness(text: str) -> CrowdLevel:
    """
    Classifica o texto de lotação.

    Variantes de "not busy" são verificadas ANTES de "busy" puro.
    """
    lowered = (text or "").lower()
    if NOT_BUSY_PATTERN.search(lowered):
        return CrowdLevel.NOT_BUSY
    if "usually" in lowered:
        return CrowdLevel.MODERATE
    if "busy" in lowered and "not" not in lowered:
        return CrowdLevel.BUSY
    return CrowdLevel.UNKNOWN


def level_from_percentage(percentage: int) -> CrowdLevel:
    if percentage >= BUSY_PERCENTAGE_THRESHOLD:
        return CrowdLevel.BUSY
    if percentage >= MODERATE_PERCENTAGE_THRESHOLD:
        return CrowdLevel.MODERATE
    return CrowdLevel.NOT_BUSY


def _current_hour_element(soup: BeautifulSoup, hour: int) -> Optional[Tag]:
    element = soup.find(attrs={"data-hour": str(hour)})
    if element is None:
        element = soup.find(attrs={"aria-checked": "true"})
    return element


def _extract_percentage(element: Tag) -> Optional[int]:
    for candidate in (element.get("aria-label"), element.get_text(" ", strip=True)):
        if not candidate:
            continue
        match = PERCENTAGE_PATTERN.search(str(candidate))
        if match:
            value = int(match.group(1))
            if 0 <= value <= 100:
                return value
    return None


def _busyness_text(soup: BeautifulSoup, current: Optional[Tag]) -> str:
    if current is not None:
        text = current.get_text(" ", strip=True)
        if BUSY_PATTERN.search(text):
            return text
    node = soup.find(string=BUSY_PATTERN)
    return node.strip() if node else ""


def extract_crowd_data_from_page(
    markup: str,
    restaurant_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[CrowdLevelData]:
    """
    Extrai a leitura de lotação do HTML renderizado.

    Args:
        markup: HTML retornado pelo provider SERP
        restaurant_name: Nome do restaurante (apenas repassado ao resultado)
        now: Instante de referência (hora local atual por padrão)

    Returns:
        CrowdLevelData, ou None se a página não tem o widget "Popular times"
    """
    now = now or datetime.now()

    try:
        soup = BeautifulSoup(markup or "", "html.parser")
        for tag in soup(["script", "style"]):
            tag.extract()

        if soup.find(string=POPULAR_TIMES_PATTERN) is None:
            logger.info(f"[Extractor] Seção 'Popular times' não encontrada ({restaurant_name or '-'})")
            return None

        current = _current_hour_element(soup, now.hour)
        busyness = _busyness_text(soup, current)
        crowd_level = classify_busyness(busyness)

        crowd_percentage = _extract_percentage(current) if current is not None else None
        if crowd_level is CrowdLevel.UNKNOWN and crowd_percentage is not None:
            crowd_level = level_from_percentage(crowd_percentage)

        time_spent_node = soup.find(string=TIME_SPENT_PATTERN)
        average_time_spent = time_spent_node.strip() if time_spent_node else ""

        logger.info(
            f"[Extractor] crowd_level={crowd_level.value}, "
            f"percentage={crowd_percentage if crowd_percentage is not None else 'N/A'}, "
            f"time_spent='{average_time_spent}'"
        )

        return CrowdLevelData(
            restaurant_name=restaurant_name,
            crowd_level=crowd_level,
            crowd_percentage=crowd_percentage,
            average_time_spent=average_time_spent,
            last_updated=datetime.now(timezone.utc),
            source="google",
        )
    except Exception as e:
        logger.error(f"[Extractor] Erro ao extrair crowd data: {type(e).__name__}: {e}", exc_info=True)
        return CrowdLevelData(
            restaurant_name=restaurant_name,
            crowd_level=CrowdLevel.UNKNOWN,
            average_time_spent="",
            last_updated=datetime.now(timezone.utc),
            source="google",
        )
