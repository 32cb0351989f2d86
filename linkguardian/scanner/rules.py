"""Default heuristic tables. Override via config/heuristics.yaml."""

from __future__ import annotations

URL_SHORTENERS: list[str] = [
    "bit.ly",
    "tinyurl.com",
    "t.co",
    "ow.ly",
    "is.gd",
    "buff.ly",
    "adf.ly",
    "short.link",
    "rebrand.ly",
    "tiny.cc",
    "cutt.ly",
    "rb.gy",
    "shorturl.at",
]

SUSPICIOUS_TLDS: dict[str, int] = {
    ".tk": 25,  # Tokelau, free registrations
    ".ml": 25,
    ".ga": 25,
    ".cf": 25,
    ".gq": 25,
    ".loan": 25,
    ".ru": 20,
    ".click": 20,
    ".download": 20,
    ".zip": 20,
    ".mov": 20,
    ".cn": 15,
    ".xyz": 15,
    ".top": 15,
    ".review": 15,
    ".stream": 15,
    ".science": 15,
    ".work": 15,
    ".country": 15,
}

PHISHING_KEYWORDS: list[str] = [
    "login",
    "signin",
    "logon",
    "verify",
    "account",
    "secure",
    "security",
    "update",
    "confirm",
    "wallet",
    "bitcoin",
    "password",
    "banking",
    "paypal",
    "urgent",
    "suspended",
    "locked",
    "expired",
    "billing",
    "payment",
    "winner",
    "prize",
    "unlock",
    "credential",
    "webscr",
    "invoice",
    "recover",
]

FREE_HOSTING_PLATFORMS: list[str] = [
    "weebly.com",
    "wix.com",
    "wixsite.com",
    "blogspot.com",
    "wordpress.com",
    "github.io",
    "herokuapp.com",
    "repl.co",
    "glitch.me",
    "000webhostapp.com",
    "netlify.app",
    "vercel.app",
    "surge.sh",
    "firebaseapp.com",
    "web.app",
    "pages.dev",
    "azurewebsites.net",
]

# Brands commonly impersonated; checked for look-alike spellings.
BRANDS: list[str] = [
    "google",
    "paypal",
    "apple",
    "amazon",
    "microsoft",
    "facebook",
    "netflix",
    "instagram",
    "whatsapp",
    "linkedin",
    "twitter",
    "yahoo",
    "outlook",
    "office365",
    "dropbox",
    "wellsfargo",
    "bankofamerica",
    "coinbase",
    "binance",
    "ebay",
    "adobe",
    "icloud",
    "github",
]

SUSPICIOUS_EXTENSIONS: list[str] = [
    "exe",
    "scr",
    "bat",
    "cmd",
    "jar",
    "zip",
    "rar",
    "msi",
    "vbs",
    "apk",
    "dmg",
    "ps1",
    "hta",
]

SOCIAL_ENGINEERING_PHRASES: list[str] = [
    "click here",
    "act now",
    "limited time",
    "verify now",
    "urgent action",
    "account suspended",
    "confirm your",
    "update your",
    "you have won",
    "claim your",
    "free gift",
]

CRYPTO_SCAM_TERMS: list[str] = [
    "bitcoin",
    "crypto",
    "forex",
    "doubler",
    "airdrop",
    "giveaway",
    "ethereum",
    "usdt",
    "investment",
    "double your",
]

KNOWN_SAFE_DOMAINS: set[str] = {
    "google.com",
    "youtube.com",
    "gmail.com",
    "microsoft.com",
    "office.com",
    "live.com",
    "outlook.com",
    "github.com",
    "apple.com",
    "icloud.com",
    "amazon.com",
    "facebook.com",
    "instagram.com",
    "linkedin.com",
    "twitter.com",
    "x.com",
    "wikipedia.org",
    "paypal.com",
    "netflix.com",
    "dropbox.com",
    "example.com",
}

KNOWN_MALICIOUS_DOMAINS: set[str] = {
    "evil.com",
    "malware.com",
    "phishing.net",
    "spammer.org",
    "suspicious.co",
}

# Leetspeak substitutions; "1" is tried as both "l" and "i".
SUBSTITUTIONS: dict[str, str] = {
    "0": "o",
    "3": "e",
    "4": "a",
    "@": "a",
    "5": "s",
    "$": "s",
}

LOOPBACK_HOSTS: set[str] = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
