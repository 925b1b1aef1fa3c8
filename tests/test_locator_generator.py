from pomforge.document import HtmlDocument
from pomforge.locator_generator import LOCATOR_RULES, resolve_locator, viable_rules
from pomforge.validation import count_candidate_matches, xpath_matches

LONG_LINK_TEXT = "Read the complete guide to returning items purchased during the seasonal sale"

MIXED_PAGE = f"""
<html><head><title>Account - Acme</title></head><body>
  <form>
    <input id="email" type="email">
    <input name="phone">
    <input data-testid="zip-code">
    <input class="form-control note-field">
    <select></select>
    <textarea></textarea>
    <button>Continue</button>
    <button>Back</button>
  </form>
  <a href="/help">Help center</a>
  <a href="/returns">{LONG_LINK_TEXT}</a>
  <a href="/faq">Frequently asked questions</a>
</body></html>
"""


def _element(document: HtmlDocument, xpath: str):
    matches = xpath_matches(document, xpath)
    assert len(matches) == 1
    return matches[0]


def _resolve(document: HtmlDocument, xpath: str):
    return resolve_locator(_element(document, xpath), document)


def test_rule_table_scores_are_strictly_descending() -> None:
    scores = [rule.score for rule in LOCATOR_RULES]
    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)
    assert LOCATOR_RULES[0].name == "id"
    assert LOCATOR_RULES[-1].name == "absolute_xpath"


def test_each_tier_resolves_on_mixed_page() -> None:
    document = HtmlDocument.parse(MIXED_PAGE)

    email = _resolve(document, "//input[@id='email']")
    assert (email.kind, email.value, email.score) == ("id", "email", 100)

    phone = _resolve(document, "//input[@name='phone']")
    assert (phone.kind, phone.value, phone.score) == ("name", "phone", 95)

    help_link = _resolve(document, "//a[@href='/help']")
    assert (help_link.kind, help_link.value, help_link.score) == ("linkText", "Help center", 90)

    long_link = _resolve(document, "//a[@href='/returns']")
    assert (long_link.kind, long_link.value, long_link.score) == ("partialLinkText", LONG_LINK_TEXT[:15], 85)

    zip_code = _resolve(document, "//input[@data-testid='zip-code']")
    assert (zip_code.kind, zip_code.value, zip_code.score) == ("css", 'input[data-testid="zip-code"]', 80)

    note = _resolve(document, "//input[contains(@class, 'note-field')]")
    assert (note.kind, note.value, note.score) == ("className", "note-field", 75)

    select = _resolve(document, "//select")
    assert (select.kind, select.value, select.score) == ("tagName", "select", 70)

    back = _resolve(document, "//button[2]")
    assert (back.kind, back.value, back.score) == ("xpath", "//button[normalize-space()='Back']", 60)


def test_unambiguous_id_always_wins() -> None:
    document = HtmlDocument.parse(
        '<input id="search" name="q" data-testid="search-box" class="search"><a id="home" href="/">Home</a>'
    )
    for element in document.interactive_elements():
        candidate = resolve_locator(element, document)
        assert candidate.kind == "id"
        assert candidate.score == 100
        assert candidate.value == HtmlDocument.attr(element, "id")


def test_duplicate_id_is_not_used() -> None:
    document = HtmlDocument.parse('<input id="field" name="first"><input id="field" name="second">')
    first = next(document.interactive_elements())
    candidate = resolve_locator(first, document)
    assert (candidate.kind, candidate.value) == ("name", "first")


def test_every_returned_locator_is_unique_on_the_page() -> None:
    document = HtmlDocument.parse(MIXED_PAGE)
    for element in document.interactive_elements():
        candidate = resolve_locator(element, document)
        if candidate.rule == "absolute_xpath":
            continue
        assert count_candidate_matches(document, candidate) == 1, candidate


def test_score_never_exceeds_first_viable_tier() -> None:
    document = HtmlDocument.parse(MIXED_PAGE)
    for element in document.interactive_elements():
        candidate = resolve_locator(element, document)
        viable = viable_rules(element, document)
        assert viable[0].score == candidate.score
        assert all(other.score <= candidate.score for other in viable)


def test_login_form_with_generated_id() -> None:
    document = HtmlDocument.parse(
        """
        <form>
          <input id="username">
          <input id="ext-gen55" name="password" type="password">
          <button id="submit">Login</button>
        </form>
        """
    )
    username, password, submit = [resolve_locator(element, document) for element in document.interactive_elements()]

    assert (username.kind, username.value, username.score) == ("id", "username", 100)
    assert (password.kind, password.value, password.score) == ("name", "password", 95)
    assert (submit.kind, submit.value, submit.score) == ("id", "submit", 100)


def test_buttons_with_different_text_resolve_by_exact_text() -> None:
    document = HtmlDocument.parse('<button class="btn">Save</button><button class="btn">Cancel</button>')
    save, cancel = [resolve_locator(element, document) for element in document.interactive_elements()]

    assert (save.value, save.score) == ("//button[normalize-space()='Save']", 60)
    assert (cancel.value, cancel.score) == ("//button[normalize-space()='Cancel']", 60)


def test_buttons_with_identical_text_resolve_by_index() -> None:
    document = HtmlDocument.parse('<button class="btn">Save</button><button class="btn">Save</button>')
    first, second = [resolve_locator(element, document) for element in document.interactive_elements()]

    assert (first.kind, first.score) == ("xpath", 55)
    assert first.value == "(//button[normalize-space()='Save'])[1]"
    assert second.value == "(//button[normalize-space()='Save'])[2]"
    assert count_candidate_matches(document, first) == 1
    assert count_candidate_matches(document, second) == 1


def test_invalid_class_is_skipped_for_the_next_one() -> None:
    document = HtmlDocument.parse(
        '<button class="9lives primary-action">Go</button><button class="other">Go</button>'
    )
    first = next(document.interactive_elements())
    candidate = resolve_locator(first, document)
    assert (candidate.kind, candidate.value, candidate.score) == ("className", "primary-action", 75)


def test_label_anchor_locates_bare_input() -> None:
    document = HtmlDocument.parse(
        """
        <div><label>Email</label><input></div>
        <div><label>Password</label><input></div>
        """
    )
    email = next(document.interactive_elements())
    candidate = resolve_locator(email, document)

    assert candidate.rule == "anchor"
    assert candidate.score == 50
    assert candidate.value == "//label[normalize-space()='Email']/following-sibling::input"
    assert count_candidate_matches(document, candidate) == 1


def test_structural_path_is_last_resort() -> None:
    document = HtmlDocument.parse(
        "<html><body><div><span>x</span></div><div><input><input></div></body></html>"
    )
    second = list(document.interactive_elements())[1]
    candidate = resolve_locator(second, document)

    assert (candidate.kind, candidate.score, candidate.rule) == ("xpath", 10, "absolute_xpath")
    assert candidate.value == "/html/body/div[2]/input[2]"
    assert xpath_matches(document, candidate.value) == [second]


def test_custom_rule_table_without_fallback_still_returns_a_path() -> None:
    document = HtmlDocument.parse("<div><input><input></div>")
    element = next(document.interactive_elements())
    candidate = resolve_locator(element, document, rules=LOCATOR_RULES[:2])
    assert candidate.rule == "absolute_xpath"
    assert candidate.score == 10


def test_attribute_whitespace_is_kept_in_selectors() -> None:
    document = HtmlDocument.parse('<input placeholder="Search"><input placeholder="Search ">')
    first, second = list(document.interactive_elements())

    candidate = resolve_locator(second, document)

    assert (candidate.kind, candidate.score) == ("css", 80)
    assert candidate.value == 'input[placeholder="Search "]'
    assert count_candidate_matches(document, candidate) == 1
    assert resolve_locator(first, document).value == 'input[placeholder="Search"]'


def test_name_with_padding_targets_its_own_element() -> None:
    document = HtmlDocument.parse('<input name="q"><input name=" q">')
    second = list(document.interactive_elements())[1]

    candidate = resolve_locator(second, document)

    assert (candidate.kind, candidate.value) == ("name", " q")


def test_non_breaking_space_text_locates_the_right_button() -> None:
    document = HtmlDocument.parse("<button>Save&nbsp;all</button><button>Save all</button><button>x</button>")
    first, second, _ = list(document.interactive_elements())

    candidate = resolve_locator(first, document)

    assert candidate.score == 60
    assert candidate.value == "//button[normalize-space()='Save\u00a0all']"
    assert xpath_matches(document, candidate.value) == [first]
    assert xpath_matches(document, resolve_locator(second, document).value) == [second]
