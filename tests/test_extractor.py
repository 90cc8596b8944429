import logging

from douban_scraper.extractor import (
    DetailExtractor,
    first_match,
    parse_first_int,
    safe_extract,
    split_list,
    TITLE_PATTERNS,
)
from douban_scraper.models import PARTIAL_MESSAGE, SUCCESS_MESSAGE

RECORD_FIELDS = [
    "id", "title", "poster", "rate", "year", "directors", "screenwriters", "cast",
    "genres", "countries", "languages", "episodes", "episode_length",
    "movie_duration", "first_aired", "plot_summary",
]


def test_movie_page_extracts_all_fields(movie_html):
    result = DetailExtractor().extract(movie_html, "1292052")
    data = result.data

    assert result.code == 200
    assert result.message == SUCCESS_MESSAGE
    assert data.id == "1292052"
    assert data.title == "肖申克的救赎 The Shawshank Redemption"
    assert data.poster == "https://img2.doubanio.com/view/photo/s_ratio_poster/public/p480747492.webp"
    assert data.rate == "9.7"
    assert data.year == "1994"
    assert data.directors == ["弗兰克·德拉邦特"]
    assert data.screenwriters == ["弗兰克·德拉邦特", "斯蒂芬·金"]
    assert data.cast == ["蒂姆·罗宾斯", "摩根·弗里曼", "鲍勃·冈顿"]
    assert data.genres == ["剧情", "犯罪"]
    assert data.countries == ["美国"]
    assert data.languages == ["英语"]
    assert data.first_aired == "1994-09-10(多伦多电影节)"
    assert data.episodes is None
    assert data.episode_length is None
    assert data.movie_duration == 142
    assert data.plot_summary == "一场谋杀案使银行家安迪蒙冤入狱， 谋杀妻子及其情人的指控将囚禁他终生。"


def test_series_page_uses_episode_length_not_runtime(series_html):
    data = DetailExtractor().extract(series_html, "35588177").data

    assert data.title == "漫长的季节"
    assert data.rate == "9.4"
    assert data.countries == ["中国大陆", "中国香港"]
    assert data.languages == ["汉语普通话", "东北话"]
    assert data.first_aired == "2023-04-22(中国大陆)"
    assert data.episodes == 12
    assert data.episode_length == 60
    assert data.movie_duration is None
    assert data.screenwriters == []
    assert data.genres == ["剧情", "悬疑", "犯罪"]
    assert data.plot_summary == "东北小城桦林，出租车司机王响 意外卷入一桩陈年旧案。"


def test_page_without_markers_gives_defaulted_record():
    result = DetailExtractor().extract("<html><body>nothing here</body></html>", "42")
    data = result.to_dict()["data"]

    assert list(data) == RECORD_FIELDS
    assert data["id"] == "42"
    assert data["title"] == "影片-42"
    for key in ("poster", "rate", "year", "first_aired", "plot_summary"):
        assert data[key] == ""
    for key in ("directors", "screenwriters", "cast", "genres", "countries", "languages"):
        assert data[key] == []
    for key in ("episodes", "episode_length", "movie_duration"):
        assert data[key] is None


def test_title_falls_back_to_title_tag():
    html = "<html><head><title>霸王别姬 (豆瓣)</title></head></html>"
    assert DetailExtractor().extract(html, "1291546").data.title == "霸王别姬"


def test_poster_falls_back_to_doubanio_image():
    html = '<div><img src="http://img9.doubanio.com/view/photo/p1.jpg" alt="x"></div>'
    assert DetailExtractor().extract(html, "1").data.poster == "https://img9.doubanio.com/view/photo/p1.jpg"


def test_poster_without_known_host_is_empty():
    html = '<div><img src="https://example.com/p1.jpg" alt="x"></div>'
    assert DetailExtractor().extract(html, "1").data.poster == ""


def test_rate_falls_back_to_average_property():
    html = '<b property="v:average"> 8.8 </b>'
    assert DetailExtractor().extract(html, "1").data.rate == "8.8"


def test_year_falls_back_to_any_four_digits():
    html = "<p>released 2001 worldwide</p>"
    assert DetailExtractor().extract(html, "1").data.year == "2001"


def test_countries_fallback_label_and_mixed_delimiters():
    html = '<span class="pl">国家/地区:</span> 日本、韩国, 法国 / <br/>'
    assert DetailExtractor().extract(html, "1").data.countries == ["日本", "韩国", "法国"]


def test_first_aired_bare_marker():
    html = '<span property="v:initialReleaseDate" content="2010-07-16(美国)">2010</span>'
    assert DetailExtractor().extract(html, "1").data.first_aired == "2010-07-16(美国)"


def test_episodes_without_digits_stays_unset():
    html = '<span class="pl">集数:</span> 未知<br/>'
    assert DetailExtractor().extract(html, "1").data.episodes is None


def test_summary_from_intro_paragraph():
    html = '<div class="intro">\n<p>  第一行\n\n   第二行  </p></div>'
    assert DetailExtractor().extract(html, "1").data.plot_summary == "第一行 第二行"


def test_failing_field_does_not_affect_others(movie_html, monkeypatch, caplog):
    def broken(self, html):
        raise RuntimeError("boom")

    monkeypatch.setattr(DetailExtractor, "rate", broken)
    with caplog.at_level(logging.WARNING, logger="douban_scraper"):
        result = DetailExtractor().extract(movie_html, "1292052")

    assert result.data.rate == ""
    assert result.data.title == "肖申克的救赎 The Shawshank Redemption"
    assert result.data.movie_duration == 142
    assert result.message == SUCCESS_MESSAGE
    assert "rate: failed - boom" in caplog.text


def test_outer_failure_returns_defaulted_record(monkeypatch):
    def broken(self, html, douban_id):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(DetailExtractor, "_extract_fields", broken)
    result = DetailExtractor().extract("<html></html>", "7")

    assert result.code == 200
    assert result.message == PARTIAL_MESSAGE
    assert result.data.title == "影片-7"
    assert result.data.cast == []


def test_non_string_input_is_absorbed():
    result = DetailExtractor().extract(None, "9")
    assert result.data.title == "影片-9"
    assert result.data.genres == []


def test_extract_is_idempotent(movie_html):
    extractor = DetailExtractor()
    assert extractor.extract(movie_html, "1292052") == extractor.extract(movie_html, "1292052")


def test_split_list():
    assert split_list("中国大陆/中国香港") == ["中国大陆", "中国香港"]
    assert split_list(" 美国 / 英国 、 ") == ["美国", "英国"]
    assert split_list("") == []


def test_parse_first_int():
    assert parse_first_int(" 45分钟(每集) ") == 45
    assert parse_first_int("暂无") is None
    assert parse_first_int(None) is None


def test_first_match_respects_order():
    html = '<h1><span property="v:itemreviewed">主标题</span></h1><title>备用 (豆瓣)</title>'
    assert first_match(TITLE_PATTERNS, html) == "主标题"
    assert first_match(TITLE_PATTERNS, "<p></p>") is None


def test_safe_extract_defaults():
    assert safe_extract("x", lambda: None, "fallback") == "fallback"
    assert safe_extract("x", lambda: 1 / 0, []) == []
    assert safe_extract("x", lambda: ["a"], []) == ["a"]
