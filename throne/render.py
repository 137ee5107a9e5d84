from __future__ import annotations

from throne.api.models import ChatState, EconomySnapshot, King, User
from throne.combat import odds_string
from throne.messenger import View


RULES = """RULES:
1. BET /king <amount> to claim the throne
2. ATTACK the King - {odds} odds (attacker/king)
3. Winner takes the stake
4. CASHOUT anytime

STREAK BONUS: +5% defense per successful defense, up to 70/30"""

START_TEXT = """👑 KING OF THE CHAT

Welcome to the ultimate throne battle!

Use /king <amount> to claim the throne and start your reign!
Example: /king 100

Good luck! 🍀"""

HELP_TEXT = """👑 KING OF THE CHAT - Help

Game commands:
/start - Show welcome message
/help - Show this help
/king <amount> - Claim the throne with a bet (1-10000)

Admin commands:
/kingreset - Reset the current king (admins only)
/kingresetforce - Force reset without admin check (emergency)
/kingstats - Show chat statistics
/kingeconomy - View economy settings (admins only)
/sethouseedge <fraction> - Set house edge, 0 to 0.5 (admins only)

Game rules:
1. BET /king 100 to claim the throne
2. ATTACK the King - the winner takes the stake
3. Fair zero-sum gaming when the house edge is 0
4. CASHOUT anytime
5. STREAK BONUS: +5% defense per successful defense, up to 70/30

Permissions required:
✅ Pin messages
✅ Delete messages"""


def user_label(user: User | None, user_id: int) -> str:
    if user is not None and user.display_name:
        return user.display_name
    return f"user {user_id}"


def king_label(chat: ChatState, king: King) -> str:
    return user_label(chat.users.get(king.holder_id), king.holder_id)


def streak_emojis(streak: int) -> str:
    return "🔥" * min(streak, 10)


def throne_view(chat: ChatState, *, image_ref: str | None = None) -> View:
    king = chat.king
    if king is None:
        raise ValueError("throne_view requires a king")
    flames = streak_emojis(king.streak)
    text = (
        f"👑 {king_label(chat, king)} – KING OF THE CHAT\n\n"
        f"{RULES.format(odds=odds_string(king.streak))}\n\n"
        f"Bet: {king.stake} coins | Streak: {king.streak}{f' {flames}' if flames else ''}"
    )
    return View(text=text, image_ref=image_ref)


def empty_throne_view(*, balance: int | None = None, image_ref: str | None = None) -> View:
    lines = [
        "👑 KING OF THE CHAT",
        "",
        RULES.format(odds=odds_string(0)),
        "",
        "No king currently - be the first to claim the throne!",
    ]
    if balance is not None:
        lines.append(f"Your balance: {balance} coins")
    return View(text="\n".join(lines), image_ref=image_ref)


def chat_stats_text(chat: ChatState, *, top: int = 5) -> str:
    lines = ["📊 KING OF THE CHAT - STATISTICS", "", f"👥 Total users: {len(chat.users)}", ""]

    king = chat.king
    if king is not None:
        lines.extend(
            [
                f"👑 Current king: {king_label(chat, king)}",
                f"💰 Bet amount: {king.stake} coins",
                f"🔥 Streak: {king.streak}",
                f"⏰ Reign started: {king.claimed_at:%Y-%m-%d %H:%M:%S %Z}",
            ]
        )
    else:
        lines.append("👑 Current king: None (throne empty)")

    ranked = sorted(chat.users.values(), key=lambda u: (-u.balance, u.id))[:top]
    if ranked:
        lines.extend(["", "💰 Top balances:"])
        lines.extend(f"{i}. {user_label(u, u.id)}: {u.balance} coins" for i, u in enumerate(ranked, start=1))
    return "\n".join(lines)


def economy_text(info: EconomySnapshot) -> str:
    return "\n".join(
        [
            "🏦 KING OF THE CHAT - ECONOMY",
            "",
            f"House edge: {info.house_edge * 100:.1f}%",
            f"Zero-sum: {'yes' if info.is_zero_sum else 'no'}",
            info.description,
        ]
    )


def reset_summary_text(chat: ChatState, previous: King, *, forced: bool, user_count: int) -> str:
    return (
        f"🔄 KING {'FORCE ' if forced else ''}RESET COMPLETED\n\n"
        f"✅ Previous king: {king_label(chat, previous)}\n"
        f"✅ Bet amount: {previous.stake} coins\n"
        f"✅ Streak: {previous.streak} 🔥\n"
        f"✅ Chat users: {user_count}\n\n"
        "The throne is now empty! Use /king <amount> to claim it."
    )
