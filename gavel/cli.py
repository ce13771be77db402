import logging
from logging.handlers import RotatingFileHandler
from typing import Annotated, Callable, Dict, Optional
import os
import typer
from gavel.core import GavelError, SettlementError
from gavel.house import AuctionHouse
from gavel.settings import load_settings

if os.getenv("DEBUG_CLI", "0") == "1":
    import debugpy

    debugpy.listen(("0.0.0.0", 5679))
    if os.getenv("DEBUGPY_WAIT", "0") == "1":
        debugpy.wait_for_client()


# ---------------------------------------------------------------------------
# Global logging configuration - set once at import time
# ---------------------------------------------------------------------------
SETTINGS = load_settings()
LOG_LEVEL = (
    logging.DEBUG
    if os.getenv("GAVEL_DEBUG", "0") == "1"
    else getattr(logging, SETTINGS.logging.level.upper(), logging.INFO)
)
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s -- %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
file_handler = RotatingFileHandler(
    SETTINGS.logging.file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
)
file_handler.setLevel(LOG_LEVEL)
file_handler.setFormatter(
    logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s -- %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)

root = logging.getLogger()  # root logger
root.addHandler(file_handler)
log = logging.getLogger("gavel.cli")


app = typer.Typer(help="gavel CLI")

MENU = (
    "\n=== Auction Menu ===\n"
    "1. Register User\n2. Login\n3. Logout\n4. Create Auction\n5. Place Bid\n"
    "6. View Active Auctions\n7. View Auction Details\n8. View User Profile\n"
    "9. End Auction\n10. Add Balance\n0. Exit"
)


class Session:
    """Who is logged in. Lives only as long as the menu loop."""

    def __init__(self, house: AuctionHouse):
        self.house = house
        self.user_id: Optional[str] = None

    def require_login(self) -> bool:
        if self.user_id is None:
            typer.echo("Please login first!")
            return False
        return True

    # ---- menu actions ------------------------------------------------------

    def register(self) -> None:
        username = typer.prompt("Username")
        email = typer.prompt("Email")
        account = self.house.register_user(username, email)
        typer.echo(f"User registered successfully! User ID: {account.id}")

    def login(self) -> None:
        username = typer.prompt("Username")
        account = self.house.accounts.find_by_username(username)
        if account is None:
            typer.echo("User not found!")
            return
        self.user_id = account.id
        typer.echo(f"Login successful! Welcome {username}")

    def logout(self) -> None:
        self.user_id = None
        typer.echo("Logged out successfully!")

    def create_auction(self) -> None:
        if not self.require_login():
            return
        name = typer.prompt("Item Name")
        description = typer.prompt("Description")
        start = typer.prompt("Start Price $", type=float)
        reserve = typer.prompt("Reserve Price $", type=float)
        duration = typer.prompt(
            "Duration (minutes)",
            type=int,
            default=self.house.settings.auctions.default_duration_minutes,
        )
        auction = self.house.create_auction(
            self.user_id, name, description, start, reserve, duration
        )
        typer.echo(f"Auction created successfully! Item ID: {auction.id}")

    def place_bid(self) -> None:
        if not self.require_login():
            return
        item_id = typer.prompt("Item ID")
        amount = typer.prompt("Bid Amount $", type=float)
        typer.echo(self.house.place_bid(self.user_id, item_id, amount).message())

    def active(self) -> None:
        typer.echo("\n=== Active Auctions ===")
        auctions = self.house.active_auctions()
        if not auctions:
            typer.echo("No active auctions available.")
        for auction in auctions:
            s = auction.summary()
            typer.echo(
                f"ID: {s.item_id} | {s.name} | Current Price: ${s.current_price:,.2f}"
                f" | Time Left: {s.remaining_seconds}s"
            )

    def details(self) -> None:
        item_id = typer.prompt("Item ID")
        auction = self.house.auctions.find(item_id)
        if auction is None:
            typer.echo("Auction not found!")
            return
        s = auction.summary()
        typer.echo("\n=== Auction Details ===")
        typer.echo(f"Item: {s.name} (ID: {s.item_id})")
        typer.echo(f"Description: {s.description}")
        typer.echo(f"Starting Price: ${s.starting_price:,.2f}")
        typer.echo(f"Reserve Price: ${s.reserve_price:,.2f}")
        typer.echo(f"Current Price: ${s.current_price:,.2f}")
        typer.echo(f"Seller: {s.seller_id}")
        typer.echo(f"Status: {'Active' if s.active else 'Ended'}")
        typer.echo(f"Time Remaining: {s.remaining_seconds} seconds")
        typer.echo(f"Reserve Met: {'Yes' if s.reserve_met else 'No'}")
        typer.echo(f"Total Bids: {s.total_bids}")
        if s.highest_bidder:
            typer.echo(f"Highest Bidder: {s.highest_bidder}")

    def profile(self) -> None:
        if not self.require_login():
            return
        p = self.house.profile(self.user_id)
        typer.echo("\n=== User Profile ===")
        typer.echo(f"Username: {p.username}")
        typer.echo(f"Email: {p.email}")
        typer.echo(f"Balance: ${p.balance:,.2f}")
        typer.echo(f"Bids Placed: {p.bids_placed}")
        typer.echo(f"Items Owned: {p.items_owned}")
        typer.echo(f"Items Sold: {p.items_sold}")
        if p.auctions_created:
            typer.echo(f"Auctions Created: {p.auctions_created}")

    def end_auction(self) -> None:
        item_id = typer.prompt("Item ID")
        outcome = self.house.end_auction(item_id)
        typer.echo("\n=== Auction Ended ===")
        typer.echo(outcome.message())

    def add_balance(self) -> None:
        if not self.require_login():
            return
        amount = typer.prompt("Amount to Add $", type=float)
        balance = self.house.add_balance(self.user_id, amount)
        typer.echo(f"Balance added successfully! New balance: ${balance:,.2f}")

    def actions(self) -> Dict[int, Callable[[], None]]:
        return {
            1: self.register,
            2: self.login,
            3: self.logout,
            4: self.create_auction,
            5: self.place_bid,
            6: self.active,
            7: self.details,
            8: self.profile,
            9: self.end_auction,
            10: self.add_balance,
        }


@app.command()
def start():
    """Run the interactive auction menu."""
    session = Session(AuctionHouse(SETTINGS))
    actions = session.actions()
    typer.echo("Welcome to the Auction System!")
    while True:
        typer.echo(MENU)
        choice = typer.prompt("Choice", type=int)
        if choice == 0:
            typer.echo("Goodbye!")
            return
        action = actions.get(choice)
        if action is None:
            typer.echo("Invalid choice.")
            continue
        try:
            action()
        except SettlementError:
            raise
        except (GavelError, ValueError) as exc:
            log.debug("menu action %d failed: %s", choice, exc)
            typer.echo(f"Error: {exc}")


@app.command("show-config")
def show_config(
    indent: Annotated[int, typer.Option("--indent", "-i", help="JSON indent.")] = 2,
):
    """Print the effective settings."""
    typer.echo(SETTINGS.model_dump_json(indent=indent))


if __name__ == "__main__":
    app()
