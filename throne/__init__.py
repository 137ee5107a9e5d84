"""King of the chat: a per-chat throne game with stakes, streaks and a house edge."""
