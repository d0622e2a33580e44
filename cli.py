# cli.py
import mimetypes
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

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

from sdk.client import StoreClient
from sdk.state import StoreState
from storefront.core import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES
from storefront.models import Category

console = Console()
CURRENCY = os.getenv("STOREFRONT_CURRENCY", "$")

# Custom prompt style for prompt_toolkit
custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


def money(value: Any) -> str:
    return f"{CURRENCY}{float(value):.2f}"


# ---------------------------
# Display helpers
# ---------------------------
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
    table.add_column("ID", style="dim", width=26)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Category", width=12)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Offer", justify="right", width=10)
    table.add_column("Images", justify="right", width=6)

    for p in products:
        offer = p.get("offerPrice")
        table.add_row(
            p.get("id", "N/A"),
            p.get("name", "N/A"),
            p.get("category", "N/A"),
            money(p.get("price", 0)),
            money(offer) if offer is not None else "-",
            str(len(p.get("images") or []))
        )
    console.print(table)


def show_cart(state: StoreState):
    title = Text()
    title.append("🛒 Shopping Cart", style="bold")
    if state.user:
        title.append(f" - {state.user.get('name') or state.user.get('email')}", style="bold cyan")
    title.append(f" - {state.cart_count()} item(s) - Total: {money(state.cart_amount())}", style="bold green")

    if not state.cart_items:
        console.print(Panel("Your cart is empty 🛍️", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("Product", style="bold", width=30)
    table.add_column("Qty", justify="right", width=8)
    table.add_column("Price", justify="right", width=12)

    for pid, qty in state.cart_items.items():
        item = state.product(pid)
        if item is None:
            table.add_row(f"[red]Missing product: {pid}[/red]", str(qty), "-")
            continue
        unit = item.get("offerPrice")
        if unit is None:
            unit = item.get("price", 0)
        table.add_row(item.get("name", "Unknown"), str(qty), money(unit))

    console.print(Panel(table, title=title, border_style="blue"))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper with spinner and error display
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner. Prints the error and
    returns None when the call raises.
    """
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            console.print(show_status(success_msg, True))
        return result
    except Exception as e:
        console.print(show_status(f"Error: {e}", False))
        return None


def read_image(path: str) -> Tuple[str, bytes, str]:
    """Load a local image for upload, applying the server's type/size rules."""
    p = Path(path).expanduser()
    content_type = mimetypes.guess_type(p.name)[0]
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValueError("Only JPEG, PNG, and GIF images are allowed")
    if p.stat().st_size > MAX_IMAGE_BYTES:
        raise ValueError("File size must be less than 5MB")
    return p.name, p.read_bytes(), content_type


# ---------------------------
# Input helpers with autocomplete
# ---------------------------
def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def product_completer(state: StoreState):
    ids = [p.get("id", "") for p in state.products]
    return WordCompleter([i for i in ids if i], ignore_case=True)


def ask_float(message: str, default: Optional[float] = None) -> Optional[float]:
    while True:
        raw = Prompt.ask(message, default="" if default is None else str(default))
        if raw == "" and default is None:
            return None
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def create_header(state: StoreState):
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    who = "guest"
    if state.user:
        who = state.user.get("email") or state.user.get("id", "guest")
        if state.is_seller:
            who += " (seller)"
    header.add_row(
        "🛍️ Storefront",
        f"[bold blue]{who}[/bold blue]",
        f"[dim]{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}[/dim]"
    )
    return Panel(header, style="bold blue")


def add_product_flow(state: StoreState):
    name = prompt_with_autocomplete("Product name")
    description = prompt_with_autocomplete("Description")
    category = prompt_with_autocomplete(
        "🏷️ Category", completer=WordCompleter([c.value for c in Category]), default=Category.EARPHONE.value
    )
    price = ask_float("💰 Price", default=0.0)
    offer = ask_float("Offer price (blank for none)")
    paths = prompt_with_autocomplete("Image paths (space separated, up to 4)").split()
    try:
        images = [read_image(p) for p in paths[:4]]
    except (OSError, ValueError) as e:
        console.print(show_status(f"Error: {e}", False))
        return
    if not images:
        console.print(show_status("Please upload at least one image", False))
        return
    product = try_api(state.client.add_product, name, description, price, category, images,
                      offer_price=offer, success_msg=f"Product '{name}' uploaded")
    if product:
        show_products([product], title="➕ New product")
        try_api(state.fetch_products)


# ---------------------------
# Main menu
# ---------------------------
def menu(state: StoreState):
    console.clear()
    try_api(state.fetch_products)
    try_api(state.fetch_user)
    console.print(create_header(state))

    while True:
        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "5", "📋 My products (seller)"),
            ("2", "🛒 View cart", "6", "➕ Add product (seller)"),
            ("3", "➕ Add to cart", "7", "🔄 Refresh"),
            ("4", "✏️ Set quantity", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 8)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(state.fetch_products, success_msg="Products loaded")
            if products is not None:
                show_products(products)

        elif choice == "2":
            show_cart(state)

        elif choice == "3":
            pid = prompt_with_autocomplete("Enter product ID", completer=product_completer(state))
            if try_api(state.add_to_cart, pid, success_msg=f"Added {pid} to cart") is not None:
                show_cart(state)

        elif choice == "4":
            pid = prompt_with_autocomplete("Enter product ID", completer=product_completer(state))
            qty = IntPrompt.ask("Quantity (0 removes)", default=1)
            if try_api(state.update_cart_quantity, pid, qty, success_msg="Cart updated") is not None:
                show_cart(state)

        elif choice == "5":
            products = try_api(state.client.seller_products, success_msg="Seller products loaded")
            if products is not None:
                show_products(products, title="📋 My products")

        elif choice == "6":
            add_product_flow(state)

        elif choice == "7":
            try_api(state.fetch_products)
            try_api(state.fetch_user, success_msg="Refreshed")
            console.print(create_header(state))

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thanks for shopping! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    client = StoreClient(
        base_url=os.getenv("STOREFRONT_URL", "http://127.0.0.1:8085"),
        token=os.getenv("STOREFRONT_TOKEN"),
    )
    try:
        menu(StoreState(client))
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
