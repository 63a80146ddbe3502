"""Tests for topic classification."""

from __future__ import annotations

from ingest.classifiers.topic import PRIORITY_ORDER, classify_topic
from ingest.news_types import TopicCategory


class TestClassifyTopic:
    def test_politics_korean(self, topics_dict: dict[str, list[str]]) -> None:
        assert classify_topic("대통령 선거 결과", keywords=topics_dict) is TopicCategory.POLITICS

    def test_particle_attached_keyword(self, topics_dict: dict[str, list[str]]) -> None:
        assert classify_topic("선거를 앞둔 분위기", keywords=topics_dict) is TopicCategory.POLITICS

    def test_english_word_boundary(self) -> None:
        assert classify_topic("Stock market rallies") is TopicCategory.ECONOMY
        # "start" must not hit "art"
        assert classify_topic("A fresh start for the city") is None

    def test_body_used(self) -> None:
        assert classify_topic("오늘의 소식", "화재로 주민이 대피했다", keywords={"사회": ["화재"]}) is TopicCategory.SOCIETY

    def test_priority_order_first_hit_wins(self) -> None:
        keywords = {"사회": ["공통"], "과학": ["공통"]}
        assert classify_topic("공통 키워드", keywords=keywords) is TopicCategory.SCIENCE

    def test_unknown_labels_ignored(self) -> None:
        assert classify_topic("연예 소식", keywords={"연예": ["연예"]}) is None

    def test_no_match(self) -> None:
        assert classify_topic("아무 관련 없는 문장") is None

    def test_empty(self) -> None:
        assert classify_topic("", "") is None

    def test_priority_covers_every_topic(self) -> None:
        assert set(PRIORITY_ORDER) == set(TopicCategory)
