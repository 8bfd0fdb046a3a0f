from models.session_models import ClickClassification, NavigationHint, Viewport
from services.prompts import (
    GOOGLE_HOME_PROMPT,
    NO_CONTEXT_SENTINEL,
    build_edit_prompt,
    build_generate_prompt,
    pre_search_prompt,
    prompt_from_url,
)


class TestPromptFromUrl:
    def test_free_text_is_kept(self):
        assert prompt_from_url("  a retro arcade fan site ") == ("a retro arcade fan site", None)

    def test_google_has_a_fixed_prompt(self):
        assert prompt_from_url("www.google.com") == (GOOGLE_HOME_PROMPT, "www.google.com")

    def test_domain_becomes_website_prompt(self):
        prompt, url = prompt_from_url("https://www.example.com/shop")
        assert url == "https://www.example.com/shop"
        assert prompt.startswith("Professional website for example.com")


class TestGeneratePrompt:
    def test_contains_viewport_and_frame_rules(self):
        prompt = build_generate_prompt("a bakery", Viewport(1280, 720))
        assert "a bakery" in prompt
        assert "1280x720" in prompt
        assert "CRITICAL REQUIREMENTS" in prompt
        assert "MOCKUP" in prompt

    def test_optional_sections(self):
        bare = build_generate_prompt("a bakery", Viewport())
        assert "Intent Analysis" not in bare
        assert "Reference details" not in bare

        rich = build_generate_prompt("a bakery", Viewport(), context="Pink logo.", analysis="Show prices.")
        assert "Pink logo." in rich
        assert "Intent Analysis: Show prices." in rich


class TestEditPrompt:
    def test_required_parts(self):
        prompt = build_edit_prompt("a bakery", (12.5, 80), Viewport(1024, 768))
        assert "red dot" in prompt
        assert "13% from the left" in prompt or "12% from the left" in prompt
        assert "80% from the top" in prompt
        assert "DRAMATIC" in prompt
        assert 'Original prompt: "a bakery"' in prompt
        assert "1024x768" in prompt
        assert "User entered text" not in prompt
        assert "Click Classification" not in prompt

    def test_user_text_and_analysis(self):
        prompt = build_edit_prompt("a bakery", (50, 50), Viewport(), user_text="croissant", analysis="Search results.")
        assert 'User entered text: "croissant"' in prompt
        assert "Click Analysis: Search results." in prompt

    def test_classification_with_navigation(self):
        classification = ClickClassification(
            kind="button",
            confidence="high",
            navigation=NavigationHint(will_navigate=True, new_url="/menu", page_name="Menu"),
        )
        prompt = build_edit_prompt("a bakery", (50, 50), Viewport(), classification=classification)
        assert "Click Classification:" in prompt
        assert "Menu (/menu)" in prompt

    def test_degraded_classification_is_omitted(self):
        prompt = build_edit_prompt("a bakery", (50, 50), Viewport(), classification=ClickClassification.fallback())
        assert "Click Classification" not in prompt


def test_pre_search_prompt_names_sentinel():
    prompt = pre_search_prompt("tiny-bakery.example")
    assert "tiny-bakery.example" in prompt
    assert f"respond with exactly: {NO_CONTEXT_SENTINEL}" in prompt
