from wordnest.application.generation import ContentGenerationService
from wordnest.domain.payloads import StoryJobInput
from wordnest.infra.llm.mock import MockLLM


def test_mock_llm_echoes_request_metadata():
    llm = MockLLM().generate_structured(prompt="hello", schema={"type": "object"}, temperature=0.2)

    assert llm["provider"] == "mock"
    assert llm["model"] == "mock-llm-v1"
    assert llm["schemaKeys"] == ["type"]
    assert llm["temperature"] == 0.2


def test_mock_llm_drives_every_generation_to_its_fallback():
    content = ContentGenerationService(llm=MockLLM())

    draft, error = content.generate_story(StoryJobInput(level="A2", mode="personalized", unknownWords=["brave"]))
    quiz = content.generate_quiz("A short story.")
    adjusted = content.adjust_difficulty(text="Keep me.", current_level="B1", target_level="A1")

    assert draft.title == "Learning Adventure (A2)"
    assert draft.model == "fallback_template"
    assert error
    assert [item["correctAnswer"] for item in quiz] == ["A", "A"]
    assert adjusted == "Keep me."


def test_mock_llm_records_each_request():
    llm = MockLLM()
    content = ContentGenerationService(llm=llm)

    content.generate_quiz("Mina found a map.")

    assert len(llm.requests) == 1
    assert llm.requests[0]["prompt"].count("Mina found a map.") == 1
    assert "questions" in llm.requests[0]["schemaRequired"]
