"""Tests for the categories page, the category tree and category moves."""
import pytest

from argobooks.domain.enums import CategoryType, ConfirmationResult
from argobooks.ui.viewmodels.categories import TOP_LEVEL_LABEL, CategoriesPageViewModel

from .factories import add_category, add_product


@pytest.fixture
def page(app):
    return CategoriesPageViewModel(app)


@pytest.fixture
def modals(app):
    return app.category_modals


@pytest.fixture
def tree(company):
    """Office > Paper, Office > Pens, plus a top-level Art category and two products."""
    office = add_category(company, "Office")
    paper = add_category(company, "Paper", parent_id=office.id)
    pens = add_category(company, "Pens", parent_id=office.id)
    art = add_category(company, "Art")
    stapler = add_product(company, "Stapler", category_id=office.id)
    a4 = add_product(company, "A4 Ream", category_id=paper.id)
    return office, paper, pens, art, stapler, a4


def rows(page):
    return [(row.name, row.is_child) for row in page.items]


class TestAddCategory:

    def test_add_and_subcategory(self, app, page, modals, company):
        page.open_add_modal()
        modals.category_name = "Office"
        office = modals.save_new_category()
        assert office.id == "CAT-PUR-001"
        assert office.type == CategoryType.PURCHASE

        assert modals.open_add_subcategory_modal(office.id)
        assert modals.parent_id == office.id
        modals.category_name = "Paper"
        paper = modals.save_new_category()
        assert paper.id == "CAT-PUR-002"
        assert paper.parent_id == office.id

        assert rows(page) == [("Office", False), ("Paper", True)]
        assert page.items[1].parent_name == "Office"
        assert page.purchase_count == 2

        app.undo_redo.undo()
        assert rows(page) == [("Office", False)]

    def test_name_required_and_unique(self, modals, company):
        add_category(company, "Office")
        modals.open_add_modal(CategoryType.PURCHASE)
        assert modals.save_new_category() is None
        assert modals.category_name_error == "Category name is required."
        modals.category_name = "office"
        assert modals.save_new_category() is None
        assert modals.category_name_error == "A category with this name already exists."

    def test_parent_options_only_top_level_of_type(self, modals, tree, company):
        add_category(company, "Retail", CategoryType.SALES)
        modals.open_add_modal(CategoryType.PURCHASE)
        assert [o.name for o in modals.parent_options()] == [TOP_LEVEL_LABEL, "Art", "Office"]


class TestCategoryTree:

    def test_children_follow_parent(self, page, tree):
        page.load()
        assert rows(page) == [("Art", False), ("Office", False), ("Paper", True), ("Pens", True)]
        office_row = page.items[1]
        assert office_row.child_count == 2
        assert office_row.product_count_display == "1 item"

    def test_type_tabs(self, page, tree, company):
        add_category(company, "Retail", CategoryType.SALES)
        page.load()
        page.selected_type = CategoryType.SALES
        assert rows(page) == [("Retail", False)]
        assert page.pagination_text == "1 category"

    def test_search_flattens_tree(self, page, tree):
        page.load()
        page.search_query = "pens"
        assert [(row.name, row.parent_name) for row in page.items] == [("Pens", "Office")]


class TestDeleteCategory:

    def test_move_children_to_top_level(self, app, confirmation, page, tree, company):
        office, paper, pens, art, stapler, a4 = tree
        page.load()
        confirmation.result = ConfirmationResult.SECONDARY

        assert page.delete(office.id)
        assert [c.name for c in company.categories] == ["Paper", "Pens", "Art"]
        assert paper.parent_id is None and pens.parent_id is None
        assert stapler.category_id is None
        assert a4.category_id == paper.id

        app.undo_redo.undo()
        assert [c.name for c in company.categories] == ["Office", "Paper", "Pens", "Art"]
        assert paper.parent_id == office.id
        assert stapler.category_id == office.id

    def test_delete_all(self, app, confirmation, page, tree, company):
        office, paper, pens, art, stapler, a4 = tree
        confirmation.result = ConfirmationResult.PRIMARY
        assert page.delete(office.id)
        assert [c.name for c in company.categories] == ["Art"]
        assert stapler.category_id is None and a4.category_id is None

        app.undo_redo.undo()
        assert len(company.categories) == 4
        assert a4.category_id == paper.id

        app.undo_redo.redo()
        assert [c.name for c in company.categories] == ["Art"]

    def test_cancel_keeps_everything(self, confirmation, page, tree, company):
        confirmation.result = ConfirmationResult.CANCEL
        assert not page.delete(tree[0].id)
        assert len(company.categories) == 4

    def test_leaf_uses_plain_confirmation(self, confirmation, page, tree, company):
        assert page.delete(tree[3].id)
        assert confirmation.prompts == ["Delete Category"]
        assert "Art" not in [c.name for c in company.categories]


class TestMoveCategory:

    def test_move_to_top_level_and_undo(self, app, page, modals, tree):
        office, paper, pens, art, *_ = tree
        assert page.open_move_modal(paper.id)
        assert modals.move_target_id == office.id
        assert [o.id for o in modals.move_target_options] == [None, art.id, office.id]

        modals.move_target_id = None
        assert modals.confirm_move()
        assert paper.parent_id is None
        assert not modals.is_move_modal_open

        app.undo_redo.undo()
        assert paper.parent_id == office.id

    def test_move_errors(self, modals, tree):
        office, paper, pens, art, *_ = tree
        modals.open_move_modal(paper.id)
        assert not modals.confirm_move()
        assert modals.move_error == "Category is already under this parent."

        modals.open_move_modal(office.id)
        modals.move_target_id = art.id
        assert not modals.confirm_move()
        assert modals.move_error == "A category with subcategories must stay at the top level."

        modals.move_target_id = office.id
        assert not modals.confirm_move()
        assert modals.move_error == "Category cannot be its own parent."


class TestEditCategory:

    def test_edit_renames_and_undo(self, app, page, modals, tree):
        office, *_ = tree
        assert modals.open_edit_modal(office.id)
        modals.category_name = "Stationery"
        modals.description = "Desk supplies"
        assert modals.save_edited_category()
        assert (office.name, office.description) == ("Stationery", "Desk supplies")

        app.undo_redo.undo()
        assert (office.name, office.description) == ("Office", "")

    def test_edit_never_reparents(self, page, modals, tree):
        office, paper, pens, art, *_ = tree
        modals.open_edit_modal(office.id)
        modals.parent_id = art.id
        modals.category_name = "Office Supplies"
        assert modals.save_edited_category()

        assert office.parent_id is None
        assert office.name == "Office Supplies"
        page.load()
        names = [name for name, _ in rows(page)]
        assert "Paper" in names and "Pens" in names
