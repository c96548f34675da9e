# -*- coding: utf-8 -*-
"""Collaborators shared by all routes, built once in the app lifespan."""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Request

from .classifiers import ClassifierSet, build_classifiers
from .llm_client import LLMClient
from .sms_client import TwilioSmsClient


@dataclass
class Capabilities:
    classifiers: ClassifierSet = field(default_factory=ClassifierSet)
    llm: LLMClient = field(default_factory=LLMClient)
    sms: TwilioSmsClient = field(default_factory=TwilioSmsClient)

    async def aclose(self) -> None:
        await self.llm.aclose()
        await self.sms.aclose()


def build_capabilities() -> Capabilities:
    return Capabilities(classifiers=build_classifiers(), llm=LLMClient(), sms=TwilioSmsClient())


def get_capabilities(request: Request) -> Capabilities:
    return request.app.state.capabilities
