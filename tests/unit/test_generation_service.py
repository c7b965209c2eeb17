"""Unit tests for demo mode and the generation service."""

import xml.etree.ElementTree as ET

import pytest

from createosaur.core.storage import LocalStore
from createosaur.providers.base import (
    GenerationConfig,
    GenerationMetadata,
    GenerationResponse,
    ImageProvider,
    ModelCard,
    ProviderConfig,
)
from createosaur.providers.credentials import CredentialResolver
from createosaur.providers.registry import ProviderRegistry


class PromptDrivenProvider(ImageProvider):
    """Fails any prompt containing "fail"; raises for prompts containing "boom"."""

    config = ProviderConfig(
        name="fake",
        display_name="Fake",
        models=(ModelCard(id="fake-model", name="Fake"),),
        credential_key="FAKE_API_KEY",
    )

    def __init__(self, configured=True):
        super().__init__(CredentialResolver.static({"FAKE_API_KEY": "key"} if configured else {}))
        self.prompts = []

    async def _generate(self, config, model_id, start):
        self.prompts.append(config.prompt)
        if "fail" in config.prompt:
            return self.create_error_response("scripted failure", model_id)
        return GenerationResponse.ok(
            GenerationMetadata(provider=self.name, model=model_id),
            image_url="https://fake.example/image.png",
        )


def make_service(configured=True, demo_seed=None):
    from createosaur.generation.service import ImageGenerationService

    provider = PromptDrivenProvider(configured=configured)
    registry = ProviderRegistry([provider], store=LocalStore(), default_provider="fake")
    return ImageGenerationService(registry, demo_seed=demo_seed), provider


class TestDemoRendering:
    """Test the procedural placeholder."""

    def test_extract_features(self):
        from createosaur.generation.demo import extract_features

        features = extract_features(
            "A massive jaw Tyrannosaurus and Triceratops hybrid, small, with stripes, "
            "colors #FF0000 #00ff00 #123 #456789, juvenile, triple horns"
        )
        assert features.species == ["T-Rex", "Triceratops"]
        assert features.colors == ["#FF0000", "#00ff00", "#123"]
        assert features.pattern == "stripes"
        assert features.size == "small"
        assert features.age == "juvenile"
        assert "massive jaw" in features.traits
        assert "triple horns" in features.traits

    def test_massive_jaw_is_not_a_size(self):
        from createosaur.generation.demo import extract_features

        assert extract_features("a raptor with a massive jaw").size == "medium"
        assert extract_features("a massive raptor").size == "massive"

    def test_deterministic_for_prompt_and_seed(self):
        from createosaur.generation.demo import render_demo_svg

        assert render_demo_svg("a red dinosaur", seed=5) == render_demo_svg("a red dinosaur", seed=5)
        assert render_demo_svg("a red dinosaur") == render_demo_svg("a red dinosaur")

    def test_seed_changes_layout(self):
        from createosaur.generation.demo import render_demo_svg

        outputs = {render_demo_svg("a red dinosaur", seed=s) for s in range(5)}
        assert len(outputs) > 1

    def test_valid_svg_with_prompt_colors(self):
        from createosaur.generation.demo import render_demo_svg

        svg = render_demo_svg("a dinosaur #AA0000 #00BB00 with spots")
        root = ET.fromstring(svg)

        assert root.tag.endswith("svg")
        assert root.get("width") == "512"
        text = svg.decode("utf-8")
        assert "#AA0000" in text
        assert "#00BB00" in text
        assert "DEMO CREATURE" in text

    def test_default_colors(self):
        from createosaur.generation.demo import render_demo_svg

        assert b"#8B4513" in render_demo_svg("a dinosaur")

    def test_prompt_text_is_escaped(self):
        from createosaur.generation.demo import render_demo_svg

        # Parses even though the prompt carries markup-like characters
        ET.fromstring(render_demo_svg("<script>alert('x')</script> & a raptor"))


class TestImageGenerationService:
    """Test the orchestrator facade."""

    @pytest.mark.asyncio
    async def test_demo_mode_when_nothing_configured(self):
        service, provider = make_service(configured=False)
        assert service.demo_mode

        result = await service.generate_image(GenerationConfig(prompt="a red dinosaur"))

        assert result.success
        assert result.metadata.provider == "demo"
        assert result.metadata.model == "svg-generator"
        assert result.metadata.cost == 0.0
        assert result.image.is_vector
        assert result.image_url.startswith("data:image/svg+xml")
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_demo_seed_is_reported(self):
        service, _ = make_service(configured=False, demo_seed=99)

        result = await service.generate_image(GenerationConfig(prompt="a red dinosaur"))
        assert result.metadata.seed == 99

    @pytest.mark.asyncio
    async def test_demo_mode_accepts_undecodable_prompt_bytes(self):
        # What argv decoding yields for bytes that are not valid UTF-8
        prompt = b"a red \xff dinosaur".decode("utf-8", "surrogateescape")
        service, _ = make_service(configured=False)

        result = await service.generate_image(GenerationConfig(prompt=prompt))

        assert result.success
        assert result.metadata.provider == "demo"
        assert result.metadata.seed is not None

    def test_prompt_seed_handles_lone_surrogates(self):
        from createosaur.generation.demo import prompt_seed

        prompt = "dino \udcff"
        assert prompt_seed(prompt) == prompt_seed(prompt)

    @pytest.mark.asyncio
    async def test_delegates_to_registry_when_configured(self):
        service, provider = make_service()
        assert not service.demo_mode

        result = await service.generate_image(GenerationConfig(prompt="a raptor"))

        assert result.success
        assert result.metadata.provider == "fake"
        assert provider.prompts == ["a raptor"]

    @pytest.mark.asyncio
    async def test_batch_preserves_order_and_continues_after_failure(self):
        service, provider = make_service()

        results = await service.generate_batch([
            GenerationConfig(prompt="A"),
            GenerationConfig(prompt="B fail"),
            GenerationConfig(prompt="C"),
        ])

        assert [r.success for r in results] == [True, False, True]
        assert provider.prompts == ["A", "B fail", "C"]
        assert results[1].error

    @pytest.mark.asyncio
    async def test_batch_captures_exceptions(self, monkeypatch):
        service, _ = make_service()
        original = service.generate_image

        async def flaky(config):
            if config.prompt == "B":
                raise RuntimeError("orchestrator bug")
            return await original(config)

        monkeypatch.setattr(service, "generate_image", flaky)

        results = await service.generate_batch([
            GenerationConfig(prompt="A"),
            GenerationConfig(prompt="B"),
            GenerationConfig(prompt="C"),
        ])

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error == "orchestrator bug"
        assert results[1].metadata.provider == "unknown"

    @pytest.mark.asyncio
    async def test_batch_empty(self):
        service, _ = make_service()
        assert await service.generate_batch([]) == []

    def test_provider_passthroughs(self):
        service, provider = make_service()

        assert service.get_available_providers() == [provider]
        assert service.get_configured_providers() == [provider]
        assert service.set_default_provider("fake") is True
        assert service.set_default_provider("nope") is False
        assert service.get_default_provider() is provider
        assert [m.id for m in service.get_models_for_provider("fake")] == ["fake-model"]
