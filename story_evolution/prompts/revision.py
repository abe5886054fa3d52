"""
Revision Prompts - Evolving Upcoming Plan Units
Templates are filled with `.format()`; optional context sections are
rendered by the format strategies and passed in as pre-built blocks.
"""

BOOK_REVISION_SYSTEM_PROMPT = "You are a story editor specializing in maintaining narrative coherence while integrating emergent story elements. Return valid JSON only."

COMIC_REVISION_SYSTEM_PROMPT = "You are a comic book editor specializing in visual storytelling, panel composition, and page pacing. Return valid JSON only."

SCREENPLAY_REVISION_SYSTEM_PROMPT = "You are a screenplay editor specializing in visual storytelling, scene structure, and subtext. Return valid JSON only."

CHAPTER_REVISION_PROMPT_TEMPLATE = """You are a story outline editor. Revise this chapter plan to integrate recent discoveries while maintaining story coherence.

ORIGINAL CHAPTER {chapter_number} PLAN:
Title: {title}
Summary: {summary}
Key Events: {key_events}
Characters: {characters}
Locations: {locations}
Emotional Goal: {emotional_goal}
Beats:
{beats}

STORY CONTEXT:
- Chapter {completed_units} of {total_units} just completed
- Current story momentum: {momentum}
- Last chapter: {last_summary}
{context_sections}
REVISION RULES:
1. Keep the core story direction intact - don't radically change where the story is going
2. INTEGRATE discoveries naturally - don't force them in if they don't fit
3. Address at least one high-priority thread if possible
4. Reinforce strong themes through character actions or setting details
5. If the original plan already addresses most issues, minimal changes are fine
6. The revised plan should feel like a natural evolution, not a different story

RESPOND WITH JSON:
{{
  "revisedTitle": "Chapter title (may be same or updated)",
  "revisedSummary": "Updated chapter summary",
  "revisedBeats": [
    "Beat 1 description",
    "Beat 2 description"
  ],
  "revisedKeyEvents": ["Event 1", "Event 2"],
  "revisedCharacters": ["Character names"],
  "revisedLocations": ["Location names"],
  "revisedEmotionalGoal": "The emotional journey",
  "revisionReason": ["Why this change was made"],
  "integratedDiscoveries": ["What was integrated"],
  "threadsAddressed": ["Thread descriptions addressed"],
  "confidenceScore": 0.85
}}

Respond with ONLY the JSON, no additional text."""

COMIC_REVISION_PROMPT_TEMPLATE = """You are a comic book editor. Revise this page plan to strengthen visual storytelling and integrate discovered visual motifs.

ORIGINAL PAGE {page_number} PLAN:
Title: {title}
Panel Count: {panel_count}
Visual Focus: {visual_focus}
Page Hook: {page_hook}
Characters: {characters}
Emotional Beat: {emotional_beat}
Location Change: {location_change}

Panels:
{panels}

STORY CONTEXT:
- Page {completed_units} of {total_units} just completed
- Current momentum: {momentum}
- Last page: {last_summary}
{context_sections}
PANEL PACING: {panel_pacing_trend}

COMIC-SPECIFIC REVISION RULES:
1. Each page MUST end with a hook that compels the reader to turn the page
2. Vary panel sizes for visual rhythm - don't make all panels the same size
3. Use CLOSE-UPS for emotional beats, WIDE shots for establishing/action
4. Dialogue should be MINIMAL - 25 words max per bubble
5. Show action through visuals, don't describe it in dialogue
6. Maintain character visual consistency (clothing, features, positioning)
7. Use visual motifs to create thematic resonance

RESPOND WITH JSON:
{{
  "revisedTitle": "Page title (optional)",
  "revisedPanelCount": 5,
  "revisedPanels": [
    {{
      "panelNumber": 1,
      "description": "Visual description",
      "dialogueSummary": "Brief dialogue or null",
      "visualEmphasis": "wide|close|medium|splash",
      "actionBeat": "What happens"
    }}
  ],
  "revisedPageHook": "Why reader turns page",
  "revisedVisualFocus": "Main visual element",
  "revisedCharactersPresent": ["Character names"],
  "revisedLocationChange": true,
  "revisedEmotionalBeat": "Emotional moment",
  "revisionReason": ["Why this change was made"],
  "visualMotifsIntegrated": ["Motif names used"],
  "pageHookImproved": true,
  "confidenceScore": 0.85
}}

Respond with ONLY the JSON, no additional text."""

SCREENPLAY_REVISION_PROMPT_TEMPLATE = """You are a screenplay editor. Revise this sequence plan to improve cinematic storytelling, pacing, and subtext.

ORIGINAL SEQUENCE {sequence_number} PLAN:
Title: {title}
Act Position: {act_position}
Sequence Goal: {sequence_goal}
Estimated Pages: {estimated_pages}
Major Characters: {characters}
Locations: {locations}
Emotional Arc: {emotional_arc}

Scenes:
{scenes}

STORY CONTEXT:
- Sequence {completed_units} of {total_units} just completed
- Current momentum: {momentum}
- Last sequence: {last_summary}
- Current dialogue/action ratio: {dialogue_percent}%
{context_sections}
SCREENPLAY-SPECIFIC REVISION RULES:
1. Show, don't tell - visual action over dialogue exposition
2. Each scene needs a PURPOSE that advances plot or character
3. Vary tension levels - not every scene should be high intensity
4. Subtext is key - characters rarely say exactly what they mean
5. Consolidate locations when possible for production efficiency
6. Action lines should be PUNCHY - 3 sentences max per action block
7. Balance dialogue and action - aim for 40-60% dialogue ratio
8. Enter scenes LATE, leave EARLY - cut the fat

RESPOND WITH JSON:
{{
  "revisedTitle": "Sequence title",
  "revisedActPosition": "setup|confrontation|resolution",
  "revisedSequenceGoal": "What this sequence accomplishes",
  "revisedEstimatedPages": 12,
  "revisedScenes": [
    {{
      "sceneNumber": 1,
      "slugline": "INT./EXT. LOCATION - TIME",
      "purpose": "Scene purpose",
      "estimatedPages": 2,
      "charactersPresent": ["Character names"],
      "keyDialogue": "Key line or null",
      "visualAction": "Main visual moment",
      "tension": "low|building|high|release",
      "subtextGoal": "What's unsaid"
    }}
  ],
  "revisedMajorCharacters": ["Character names"],
  "revisedLocations": ["Location names"],
  "revisedEmotionalArc": "Emotional journey",
  "revisionReason": ["Why this change was made"],
  "visualBeatsIntegrated": ["Visual beat descriptions"],
  "locationsOptimized": ["Locations consolidated or reused"],
  "subtextEnhanced": true,
  "confidenceScore": 0.85
}}

Respond with ONLY the JSON, no additional text."""


def render_section(title: str, lines) -> str:
    """Render an optional titled list section; empty when there are no lines."""
    lines = [line for line in lines if line]
    if not lines:
        return ""
    body = "\n".join(f"- {line}" for line in lines)
    return f"\n{title}:\n{body}\n"
