#!/usr/bin/env python3
"""learnhub: desktop viewer for a subject/category/file corpus of study notes."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from PySide6.QtCore import Qt, QTimer, QUrl, Signal
from PySide6.QtGui import QColor, QDesktopServices, QGuiApplication, QIcon, QPainter, QPen, QPixmap
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineScript, QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSplitter,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from learnhub.blocks import RenderedDocument
from learnhub.corpus import CorpusDirectory, CorpusEntry, CorpusIndex, EntryKind, build_corpus_index, load_manifest
from learnhub.errors import CorpusPathError, NavigationError
from learnhub.html_view import placeholder_html, render_html, subject_overview_html
from learnhub.navigation import NavigationState, NavigationStore, ViewMode, breadcrumb
from learnhub.preferences import PreferenceStore
from learnhub.renderer import DocumentCache, MarkdownRenderer
from learnhub.search import SubjectFilter
from learnhub.toc import TocEntry, build_toc

LOG = logging.getLogger(__name__)

SEARCH_DEBOUNCE_MS = 200
ENTRY_ROLE = Qt.ItemDataRole.UserRole
# Role holding the anchor id of a TOC tree item.
ANCHOR_ROLE = Qt.ItemDataRole.UserRole
_WIDGET_STYLES = {
    "light": "",
    "dark": """
        QWidget { background-color: #111827; color: #e5e7eb; }
        QLineEdit, QTreeWidget { background-color: #1f2937; border: 1px solid #374151; }
        QPushButton { background-color: #1f2937; border: 1px solid #4b5563; padding: 3px 10px; }
        QTreeWidget::item:selected { background-color: #2563eb; color: #f8fafc; }
    """,
}


def _build_clear_x_icon() -> QIcon:
    """Small grey X used as the search box clear action."""
    pixmap = QPixmap(14, 14)
    pixmap.fill(Qt.GlobalColor.transparent)
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
    pen = QPen(QColor("#9ca3af"))
    pen.setWidth(2)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    painter.setPen(pen)
    painter.drawLine(3, 3, 11, 11)
    painter.drawLine(11, 3, 3, 11)
    painter.end()
    return QIcon(pixmap)


def _system_color_scheme() -> str | None:
    """Map Qt's reported colour scheme to a theme name, if it reports one."""
    hints = QGuiApplication.styleHints()
    if not hasattr(hints, "colorScheme"):
        return None
    scheme = hints.colorScheme()
    if scheme == Qt.ColorScheme.Dark:
        return "dark"
    if scheme == Qt.ColorScheme.Light:
        return "light"
    return None


class CorpusWebPage(QWebEnginePage):
    """Keeps link clicks in the preview under the navigation store.

    Links into the corpus are reported through ``corpusLinkClicked`` as a
    corpus path and fragment; web links open in the system browser.
    """

    corpusLinkClicked = Signal(str, str)

    def __init__(self, corpus: CorpusDirectory, parent=None):
        super().__init__(parent)
        self._corpus = corpus

    def acceptNavigationRequest(self, url, nav_type, is_main_frame):
        if nav_type != QWebEnginePage.NavigationType.NavigationTypeLinkClicked:
            return super().acceptNavigationRequest(url, nav_type, is_main_frame)
        if url.isLocalFile():
            path = self._corpus.corpus_path_for(Path(url.toLocalFile()))
            if path is not None:
                self.corpusLinkClicked.emit(path, url.fragment())
            return False
        if url.scheme() in ("http", "https", "mailto"):
            QDesktopServices.openUrl(url)
        return False


class LearnHubWindow(QMainWindow):
    def __init__(self, corpus: CorpusDirectory, index: CorpusIndex, preferences: PreferenceStore):
        super().__init__()
        self.corpus = corpus
        self.index = index
        self.preferences = preferences
        self.renderer = MarkdownRenderer()
        self.cache = DocumentCache(preferences.current.document_cache_size)
        self.store = NavigationStore(index)
        self.subject_filter = SubjectFilter(index.subjects)
        self.current_document: RenderedDocument | None = None
        self._pending_anchor: str | None = None

        self.search_timer = QTimer(self)
        self.search_timer.setSingleShot(True)
        self.search_timer.setInterval(SEARCH_DEBOUNCE_MS)
        self.search_timer.timeout.connect(self._run_search)

        self.setWindowTitle(f"learnhub - {corpus.root}")
        self.resize(1540, 980)

        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Filter subjects")
        self.search_clear_action = self.search_input.addAction(
            _build_clear_x_icon(),
            QLineEdit.ActionPosition.TrailingPosition,
        )
        self.search_clear_action.setToolTip("Clear filter")
        self.search_clear_action.triggered.connect(self._clear_search)
        self.search_clear_action.setVisible(False)
        self.search_input.textChanged.connect(self._on_search_text_changed)
        self.search_input.returnPressed.connect(self._run_search_now)

        self.sidebar = QTreeWidget()
        self.sidebar.setHeaderHidden(True)
        self.sidebar.setMinimumWidth(240)
        self.sidebar.setMaximumWidth(520)
        self.sidebar.itemClicked.connect(self._on_sidebar_item_clicked)

        sidebar_container = QWidget()
        sidebar_layout = QVBoxLayout(sidebar_container)
        sidebar_layout.setContentsMargins(0, 0, 0, 0)
        sidebar_layout.addWidget(self.search_input)
        sidebar_layout.addWidget(self.sidebar, 1)

        self.preview = QWebEngineView()
        self.preview_page = CorpusWebPage(corpus, self.preview)
        self.preview_page.corpusLinkClicked.connect(self._on_corpus_link_clicked)
        self.preview.setPage(self.preview_page)
        preview_settings = self.preview.settings()
        # Page scripts stay off; scrolling runs in the application world only.
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, False)
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, False)
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        self.preview.loadFinished.connect(self._on_preview_load_finished)

        self.toc_tree = QTreeWidget()
        self.toc_tree.setHeaderLabel("Contents")
        self.toc_tree.setMinimumWidth(200)
        self.toc_tree.setMaximumWidth(460)
        self.toc_tree.itemClicked.connect(self._on_toc_item_clicked)

        self.breadcrumb_label = QLabel("")
        self.breadcrumb_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)

        self.theme_btn = QPushButton("")
        self.theme_btn.clicked.connect(self._toggle_theme)

        self.copy_btn = QPushButton("Copy text")
        self.copy_btn.setToolTip("Copy the current document as plain text")
        self.copy_btn.clicked.connect(self._copy_current_document_text)

        self.save_btn = QPushButton("Save text")
        self.save_btn.setToolTip("Save the current document as a plain text file")
        self.save_btn.clicked.connect(self._save_current_document_text)

        top_bar = QHBoxLayout()
        top_bar.setContentsMargins(0, 0, 0, 0)
        top_bar.addWidget(self.breadcrumb_label, 1)
        top_bar.addWidget(self.copy_btn)
        top_bar.addWidget(self.save_btn)
        top_bar.addSpacing(16)
        top_bar.addWidget(self.theme_btn)

        top_bar_widget = QWidget()
        top_bar_widget.setLayout(top_bar)
        top_bar_widget.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        self.splitter = QSplitter(Qt.Horizontal)
        self.splitter.addWidget(sidebar_container)
        self.splitter.addWidget(self.preview)
        self.splitter.addWidget(self.toc_tree)
        self.splitter.setChildrenCollapsible(False)
        self.splitter.setStretchFactor(0, 1)
        self.splitter.setStretchFactor(1, 4)
        self.splitter.setStretchFactor(2, 1)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(top_bar_widget)
        layout.addWidget(self.splitter, 1)
        self.setCentralWidget(central)

        self.store.subscribe(self._on_navigation_changed)
        self._populate_sidebar(self.subject_filter.visible)
        self._apply_theme_to_widgets()
        self._update_document_actions()
        self._show_current_view()
        self._report_corpus_notices()

    # Sidebar and search

    def _populate_sidebar(self, subjects: tuple[CorpusEntry, ...]) -> None:
        """Rebuild the subject tree from the visible subjects and restore the selection."""
        self.sidebar.clear()
        selected_path = self.store.state.file or self.store.state.category or self.store.state.subject
        selected_item = None
        for subject in subjects:
            subject_item = self._sidebar_item(subject)
            self.sidebar.addTopLevelItem(subject_item)
            for category in subject.children:
                category_item = self._sidebar_item(category)
                subject_item.addChild(category_item)
                for file_entry in category.children:
                    file_item = self._sidebar_item(file_entry)
                    category_item.addChild(file_item)
                    if file_entry.path == selected_path:
                        selected_item = file_item
                if category.path == selected_path:
                    selected_item = category_item
            if subject.path == selected_path:
                selected_item = subject_item
        if selected_item is not None:
            self._select_sidebar_item(selected_item)

    @staticmethod
    def _sidebar_item(entry: CorpusEntry) -> QTreeWidgetItem:
        item = QTreeWidgetItem([entry.display_name])
        item.setData(0, ENTRY_ROLE, entry.path)
        item.setToolTip(0, entry.path)
        return item

    def _select_sidebar_item(self, item: QTreeWidgetItem) -> None:
        self.sidebar.blockSignals(True)
        try:
            parent = item.parent()
            while parent is not None:
                parent.setExpanded(True)
                parent = parent.parent()
            self.sidebar.setCurrentItem(item)
        finally:
            self.sidebar.blockSignals(False)

    def _sync_sidebar_selection(self, state: NavigationState) -> None:
        target = state.file or state.category or state.subject
        if target is None:
            self.sidebar.clearSelection()
            return
        for item in self._iter_sidebar_items():
            if item.data(0, ENTRY_ROLE) == target:
                self._select_sidebar_item(item)
                return

    def _iter_sidebar_items(self):
        stack = [self.sidebar.topLevelItem(i) for i in range(self.sidebar.topLevelItemCount())]
        while stack:
            item = stack.pop()
            yield item
            stack.extend(item.child(i) for i in range(item.childCount()))

    def _on_search_text_changed(self, text: str) -> None:
        """Debounce filter input before rebuilding the sidebar."""
        self.search_clear_action.setVisible(bool(text.strip()))
        self.preferences.set_search_query(text)
        if not text.strip():
            self.search_timer.stop()
            self._run_search()
            return
        self.search_timer.start()

    def _clear_search(self) -> None:
        self.search_timer.stop()
        self.search_input.clear()

    def _run_search_now(self) -> None:
        """Run the filter immediately, bypassing debounce delay."""
        self.search_timer.stop()
        self._run_search()

    def _run_search(self) -> None:
        if not self.subject_filter.update(self.search_input.text()):
            return
        visible = self.subject_filter.visible
        self._populate_sidebar(visible)
        if self.subject_filter.query:
            self.statusBar().showMessage(f"{len(visible)} of {len(self.index.subjects)} subject(s) match", 3000)

    def _on_sidebar_item_clicked(self, item: QTreeWidgetItem, _column: int) -> None:
        path = item.data(0, ENTRY_ROLE)
        entry = self.index.resolve(path) if path else None
        if entry is None:
            return
        try:
            if entry.kind is EntryKind.FILE:
                self.store.select_file(entry.path)
            elif entry.kind is EntryKind.CATEGORY:
                self.store.select_category(entry.path)
            else:
                self.store.select_subject(entry.path)
        except NavigationError as exc:
            self.statusBar().showMessage(str(exc), 5000)

    # Table of contents

    def _populate_toc(self, entries: tuple[TocEntry, ...]) -> None:
        self.toc_tree.clear()

        def add(parent, entry: TocEntry) -> None:
            item = QTreeWidgetItem([entry.text])
            item.setData(0, ANCHOR_ROLE, entry.anchor_id)
            item.setToolTip(0, entry.text)
            if parent is None:
                self.toc_tree.addTopLevelItem(item)
            else:
                parent.addChild(item)
            for child in entry.children:
                add(item, child)

        for entry in entries:
            add(None, entry)
        self.toc_tree.expandAll()

    def _on_toc_item_clicked(self, item: QTreeWidgetItem, _column: int) -> None:
        anchor = item.data(0, ANCHOR_ROLE)
        if not anchor:
            return
        try:
            self.store.jump_to_anchor(anchor)
        except NavigationError as exc:
            self.statusBar().showMessage(str(exc), 5000)

    # Navigation

    def _on_corpus_link_clicked(self, path: str, fragment: str) -> None:
        try:
            self.store.follow_link(path, fragment or None)
        except NavigationError as exc:
            self.statusBar().showMessage(str(exc), 5000)

    def _on_navigation_changed(self, previous: NavigationState, current: NavigationState) -> None:
        """Re-derive every panel from the new snapshot."""
        self._sync_sidebar_selection(current)
        if current.file is not None and current.file == previous.file:
            self._scroll_to_anchor(current.scroll_anchor)
            return
        self._show_current_view()

    def _show_current_view(self) -> None:
        state = self.store.state
        self.breadcrumb_label.setText("  /  ".join(breadcrumb(state, self.index)))
        theme = self.preferences.current.theme
        base_url = QUrl.fromLocalFile(f"{self.corpus.root}/")

        if state.mode is ViewMode.FILE_VIEW:
            self._load_document(state.file, state.scroll_anchor)
            return

        self.current_document = None
        self._pending_anchor = None
        self.toc_tree.clear()
        self._update_document_actions()
        if self.index.is_empty:
            message = f"No content found in {self.corpus.root}"
            self.preview.setHtml(placeholder_html(message, theme), base_url)
            return
        if state.mode is ViewMode.SUBJECT_OVERVIEW:
            subject = self.index.resolve(state.subject)
            self.preview.setHtml(subject_overview_html(subject, theme, state.category), base_url)
            return
        self.preview.setHtml(placeholder_html("Select a subject or document", theme), base_url)

    def _load_document(self, path: str, anchor: str | None) -> None:
        theme = self.preferences.current.theme
        base_url = QUrl.fromLocalFile(f"{self.corpus.root}/")
        self.statusBar().showMessage(f"Loading {path}...")
        try:
            markdown_text = self.corpus.read_text(path)
        except (OSError, CorpusPathError) as exc:
            LOG.warning("Could not read %s: %s", path, exc)
            self.current_document = None
            self.toc_tree.clear()
            self._update_document_actions()
            self.statusBar().showMessage(f"Could not read {path}: {exc}", 5000)
            self.preview.setHtml(placeholder_html(f"Could not read {path}: {exc}", theme), base_url)
            return

        document = self.cache.get_or_render(self.renderer, path, markdown_text)
        self.current_document = document
        self._populate_toc(build_toc(document))
        self._update_document_actions()
        self._pending_anchor = anchor
        if document.partial_failure:
            self.statusBar().showMessage(f"Rendered {path} with errors: {document.partial_failure}", 5000)
        else:
            self.statusBar().showMessage(f"Rendered {path}", 3000)
        self.preview.setHtml(render_html(document, theme), base_url)

    def _on_preview_load_finished(self, ok: bool) -> None:
        """Apply the scroll target once the new page exists."""
        if not ok or self._pending_anchor is None:
            return
        anchor = self._pending_anchor
        self._pending_anchor = None
        self._scroll_to_anchor(anchor)

    def _scroll_to_anchor(self, anchor: str | None) -> None:
        if anchor is None:
            js = "window.scrollTo(0, 0);"
        else:
            js = (
                "(() => {"
                f"const target = document.getElementById({json.dumps(anchor)});"
                "if (target) { target.scrollIntoView({block: 'start'}); }"
                "})();"
            )
        self.preview.page().runJavaScript(js, QWebEngineScript.ScriptWorldId.ApplicationWorld.value)

    # Theme and document actions

    def _apply_theme_to_widgets(self) -> None:
        theme = self.preferences.current.theme
        self.setStyleSheet(_WIDGET_STYLES.get(theme, ""))
        self.theme_btn.setText("Light theme" if theme == "dark" else "Dark theme")

    def _toggle_theme(self) -> None:
        self.preferences.toggle_theme()
        self._apply_theme_to_widgets()
        self._show_current_view()

    def _update_document_actions(self) -> None:
        has_document = self.current_document is not None
        self.copy_btn.setEnabled(has_document)
        self.save_btn.setEnabled(has_document)

    def _copy_current_document_text(self) -> None:
        if self.current_document is None:
            return
        QApplication.clipboard().setText(self.current_document.plain_text())
        self.statusBar().showMessage("Copied document text to clipboard", 3000)

    def _save_current_document_text(self) -> None:
        document = self.current_document
        if document is None:
            return
        suggested = Path(document.path).with_suffix(".txt").name
        target, _filter = QFileDialog.getSaveFileName(self, "Save document text", suggested, "Text files (*.txt)")
        if not target:
            return
        try:
            Path(target).write_text(document.plain_text(), encoding="utf-8")
        except OSError as exc:
            QMessageBox.critical(self, "Save failed", f"Could not save {target}: {exc}")
            return
        self.statusBar().showMessage(f"Saved document text to {target}", 3000)

    def _report_corpus_notices(self) -> None:
        if self.index.is_empty:
            self.statusBar().showMessage("No content: the corpus has no subject/category/file documents")
        elif self.index.notices:
            self.statusBar().showMessage(
                f"Skipped {len(self.index.notices)} corpus entr{'y' if len(self.index.notices) == 1 else 'ies'} "
                "that do not follow the subject/category/file layout",
                8000,
            )
        else:
            self.statusBar().showMessage(f"Loaded {len(self.index.files())} document(s)", 3000)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="learnhub",
        description="Browse a subject/category/file corpus of markdown study notes.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Corpus root directory (default: current directory).",
    )
    parser.add_argument(
        "--manifest",
        default=None,
        help="JSON or text file listing corpus-relative document paths instead of scanning the root.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr.")
    args = parser.parse_args()
    _configure_logging(args.verbose)

    root = Path(args.path).expanduser() if args.path is not None else Path.cwd()
    if not root.exists():
        print(f"Path does not exist: {root}", file=sys.stderr)
        return 2
    if not root.is_dir():
        print(f"Path is not a directory: {root}", file=sys.stderr)
        return 2

    corpus = CorpusDirectory(root)
    listing = load_manifest(Path(args.manifest).expanduser()) if args.manifest else corpus.listing()
    index = build_corpus_index(listing)

    app = QApplication(sys.argv)
    app.setApplicationName("learnhub")
    app.setDesktopFileName("learnhub")

    preferences = PreferenceStore(system_theme=_system_color_scheme)
    preferences.load()

    window = LearnHubWindow(corpus, index, preferences)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
