# cli.py - interactive storefront browser with autocomplete
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.storefront_client import StoreClient
import requests

console = Console()
c = StoreClient(base_url=os.getenv("STOREFRONT_URL", "http://127.0.0.1:8085"))


# Global state for status messages and caching
status_message = "Ready"
signed_in_as: Optional[str] = None
product_cache: List[Dict[str, Any]] = []
category_cache: List[str] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})

SORT_FIELDS = ["id", "title", "price", "rating", "stock", "category"]


# ---------------------------
# Display helpers
# ---------------------------
def _stars(rating: float) -> str:
    full = int(round(rating or 0))
    return "★" * full + "☆" * (5 - full)


def show_products(products: List[Dict[str, Any]], title: str = "📦 Products Catalog"):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Title", style="bold", width=36)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Rating", width=12)
    table.add_column("Stock", justify="right", width=7)
    table.add_column("Category", width=14)

    for p in products:
        stock = p.get("stock", 0)
        table.add_row(
            p.get("id", "N/A"),
            p.get("title", "N/A"),
            f"${p.get('price', 0):.2f}",
            _stars(p.get("rating", 0)),
            str(stock) if stock else "[red]out[/red]",
            p.get("category", "N/A")
        )
    console.print(table)


def show_page(listing: Dict[str, Any]):
    show_products(listing.get("products", []))
    footer = Text()
    footer.append(f"Page {listing.get('page')} of {listing.get('totalPages')}", style="bold")
    footer.append(f"  •  {listing.get('totalProducts')} products", style="dim")
    if listing.get("hasMore"):
        footer.append("  •  more available", style="green")
    console.print(footer)


def show_product_detail(product: Dict[str, Any]):
    body = Text()
    body.append(f"{product.get('title', 'N/A')}\n", style="bold")
    body.append(f"${product.get('price', 0):.2f}", style="bold green")
    body.append(f"   {_stars(product.get('rating', 0))}   {product.get('category', '')}\n\n")
    body.append(product.get("description", "") or "No description", style="italic")
    tags = product.get("tags") or []
    if tags:
        body.append("\n\nTags: " + ", ".join(tags), style="dim")
    console.print(Panel(body, title=f"ℹ️ Product {product.get('id')}", border_style="cyan"))
    show_reviews(product.get("reviews") or [])


def show_reviews(reviews: List[Dict[str, Any]]):
    if not reviews:
        console.print("[italic yellow]No reviews yet[/italic yellow]")
        return

    table = Table(title="💬 Reviews", box=box.ROUNDED, header_style="bold yellow", show_lines=True)
    table.add_column("Review ID", style="dim", width=12)
    table.add_column("Rating", width=7)
    table.add_column("Comment", width=40)
    table.add_column("By", width=20)
    table.add_column("Date", width=19)

    for r in reviews:
        table.add_row(
            r.get("id", "N/A")[:10] + "…",
            _stars(r.get("rating", 0)),
            r.get("comment", ""),
            r.get("reviewerName", "Anonymous"),
            (r.get("date") or "")[:19]
        )
    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper with exception handling
# ---------------------------
def _error_text(e: Exception) -> str:
    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        try:
            return f"HTTP {e.response.status_code}: {e.response.json().get('error', e.response.text)}"
        except ValueError:
            return f"HTTP {e.response.status_code}: {e.response.text}"
    return str(e)


def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner. Errors are shown in the status
    panel and None is returned.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except (requests.exceptions.RequestException, ValueError) as e:
        status_message = f"Error: {_error_text(e)}"
        console.print(show_status(status_message, False))
        return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        listing = try_api(c.list_products, limit=100) or {}
        product_cache = listing.get("products", [])
    return WordCompleter([p.get("id", "") for p in product_cache if p.get("id")], ignore_case=True)


def get_category_completer():
    global category_cache
    if not category_cache:
        category_cache = try_api(c.list_categories) or []
    return WordCompleter(category_cache, ignore_case=False)


def get_review_completer(product_id: str):
    product = try_api(c.get_product, product_id) or {}
    return WordCompleter([r.get("id", "") for r in product.get("reviews") or []])


# ---------------------------
# Layout and Header
# ---------------------------
def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    who = f"[green]{signed_in_as}[/green]" if signed_in_as else "[dim]not signed in[/dim]"
    header.add_row(
        "🛍️ Storefront",
        f"[bold blue]Catalog browser[/bold blue] · {who}",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Input helpers with autocomplete
# ---------------------------
def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_listing_options() -> Dict[str, Any]:
    category = prompt_with_autocomplete("🏷️ Category (blank for all)", completer=get_category_completer()).strip()
    sort_by = prompt_with_autocomplete("Sort by", completer=WordCompleter(SORT_FIELDS), default="id").strip()
    order = Prompt.ask("Order", choices=["asc", "desc"], default="asc")
    limit = IntPrompt.ask("Page size", default=20)
    return {"category": category or None, "sort_by": sort_by or "id", "order": order, "limit": limit}


def browse(search: Optional[str] = None):
    global product_cache
    options = ask_listing_options()
    page = 1
    while True:
        listing = try_api(c.list_products, page=page, search=search, **options)
        if listing is None:
            return
        product_cache = listing.get("products", []) or product_cache
        show_page(listing)
        if not listing.get("hasMore") or not Confirm.ask("Next page?"):
            return
        page += 1


def require_sign_in() -> bool:
    if signed_in_as:
        return True
    console.print("[red]Set a bearer token first (option 5).[/red]")
    return False


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, signed_in_as, product_cache, category_cache

    console.clear()
    console.print(create_header())

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 Browse products", "5", "🔑 Set bearer token"),
            ("2", "🔍 Search products", "6", "➕ Add review"),
            ("3", "ℹ️ Product details", "7", "✏️ Edit review"),
            ("4", "🏷️ Categories", "8", "🗑️ Delete review"),
            ("", "", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 9)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            browse()

        elif choice == "2":
            term = prompt_with_autocomplete("Enter search term").strip()
            if term:
                browse(search=term)

        elif choice == "3":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer()).strip()
            product = try_api(c.get_product, pid, success_msg=f"Product {pid} loaded")
            if product:
                show_product_detail(product)

        elif choice == "4":
            category_cache = try_api(c.list_categories, success_msg="Categories loaded") or []
            if category_cache:
                console.print(Panel("\n".join(f"• {name}" for name in category_cache), title="🏷️ Categories"))

        elif choice == "5":
            token = Prompt.ask("Paste bearer token (blank to sign out)", password=True, default="").strip()
            c.set_token(token or None)
            signed_in_as = (Prompt.ask("Label for this session", default="me") if token else None)
            status_message = f"Signed in as {signed_in_as}" if token else "Signed out"
            console.print(create_header())

        elif choice == "6" and require_sign_in():
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer()).strip()
            rating = IntPrompt.ask("Rating (1-5)", choices=["1", "2", "3", "4", "5"], default=5)
            comment = Prompt.ask("Comment", default="")
            review = try_api(c.add_review, pid, rating, comment, success_msg=f"Review added to product {pid}")
            if review:
                show_reviews([review])

        elif choice == "7" and require_sign_in():
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer()).strip()
            rid = prompt_with_autocomplete("Review ID", completer=get_review_completer(pid)).strip()
            rating = IntPrompt.ask("New rating (1-5)", choices=["1", "2", "3", "4", "5"], default=5)
            comment = Prompt.ask("New comment", default="")
            review = try_api(c.edit_review, pid, rid, rating, comment, success_msg="Review updated")
            if review:
                show_reviews([review])

        elif choice == "8" and require_sign_in():
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer()).strip()
            rid = prompt_with_autocomplete("Review ID", completer=get_review_completer(pid)).strip()
            if Confirm.ask("[red]Delete this review?[/red]"):
                try_api(c.delete_review, pid, rid, success_msg="Review deleted")

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thanks for shopping! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Bye[/dim]")
