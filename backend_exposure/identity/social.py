"""
Social-handle links for a wallet.

Resolvers (SNS, AllDomains, web3.bio, Farcaster, ...) are pluggable through the
SocialResolver protocol. The default resolver finds nothing; the Social Exposure
category scores whatever the injected resolver returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class SocialLinks:
    twitter: str | None = None
    discord: str | None = None
    telegram: str | None = None
    github: str | None = None
    backpack: str | None = None
    farcaster: str | None = None
    lens: str | None = None
    ens: str | None = None
    basename: str | None = None
    sns_names: tuple[str, ...] = ()
    all_domains: tuple[str, ...] = ()
    web3bio_profiles: tuple[dict[str, Any], ...] = ()

    HANDLE_FIELDS = ("twitter", "farcaster", "lens", "ens", "basename", "backpack", "discord", "telegram", "github")

    def handle_count(self) -> int:
        """Named handles plus every SNS name and domain."""
        named = sum(1 for f in self.HANDLE_FIELDS if getattr(self, f))
        return named + len(self.sns_names) + len(self.all_domains)

    def to_dict(self) -> dict[str, Any]:
        return {
            "twitter": self.twitter,
            "discord": self.discord,
            "telegram": self.telegram,
            "github": self.github,
            "backpack": self.backpack,
            "farcaster": self.farcaster,
            "lens": self.lens,
            "ens": self.ens,
            "basename": self.basename,
            "snsNames": list(self.sns_names),
            "allDomains": list(self.all_domains),
            "web3BioProfiles": [dict(p) for p in self.web3bio_profiles],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SocialLinks:
        return cls(
            twitter=data.get("twitter"),
            discord=data.get("discord"),
            telegram=data.get("telegram"),
            github=data.get("github"),
            backpack=data.get("backpack"),
            farcaster=data.get("farcaster"),
            lens=data.get("lens"),
            ens=data.get("ens"),
            basename=data.get("basename"),
            sns_names=tuple(data.get("snsNames") or ()),
            all_domains=tuple(data.get("allDomains") or ()),
            web3bio_profiles=tuple(data.get("web3BioProfiles") or ()),
        )


class SocialResolver(Protocol):
    async def resolve(self, address: str) -> SocialLinks: ...


class NullSocialResolver:
    """Resolves every address to no links."""

    async def resolve(self, address: str) -> SocialLinks:
        return SocialLinks()
