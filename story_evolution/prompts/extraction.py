"""
Extraction Prompts - What Actually Happened
One base request shared by every content format plus one addendum per format.
The JSON schemas are plain strings appended after the formatted header, so
they need no brace escaping.
"""

BOOK_EXTRACTION_SYSTEM_PROMPT = "You are a precise story analyst. Extract story elements and return valid JSON only. Pay attention to prose quality, internal monologue, and narrative pacing."

COMIC_EXTRACTION_SYSTEM_PROMPT = "You are a comic book analyst specializing in visual storytelling. Extract story and visual elements and return valid JSON only. Pay special attention to panel composition, page hooks, and visual consistency."

SCREENPLAY_EXTRACTION_SYSTEM_PROMPT = "You are a screenplay analyst specializing in film structure. Extract story and scene elements and return valid JSON only. Pay special attention to sluglines, visual action, and dialogue balance."

EXTRACTION_USER_PROMPT_TEMPLATE = """You are a story analyst. Extract key elements from this content.

{unit_label} {unit_number} CONTENT:
{content}

WHAT THE OUTLINE PLANNED:
{planned_summary}

PREVIOUS SUMMARY:
{prior_summary}

KNOWN CHARACTERS SO FAR:
{known_entities}

EXTRACT THE FOLLOWING CORE ELEMENTS (respond in JSON):
"""

EXTRACTION_CORE_SCHEMA = """
{
  "events": [
    {
      "description": "Brief description of what happened",
      "type": "action|dialogue|revelation|decision|consequence",
      "characters": ["names involved"],
      "significance": "minor|moderate|major|pivotal",
      "location": "where it happened"
    }
  ],

  "characters": [
    {
      "name": "Character name",
      "isNew": true/false,
      "role": "protagonist|antagonist|ally|neutral|unknown",
      "emotionalState": "How they feel at end",
      "physicalState": "Any injuries or conditions (optional)",
      "newKnowledge": ["Things they learned"],
      "internalConflict": "What they struggle with inside (optional)"
    }
  ],

  "locations": [
    {
      "name": "Location name",
      "isNew": true/false,
      "type": "physical|memory|phone|dream|parallel",
      "mood": "The atmosphere",
      "details": ["Notable details mentioned"]
    }
  ],

  "relationships": [
    {
      "character1": "Name",
      "character2": "Name",
      "change": "improved|worsened|complicated|revealed|unchanged",
      "description": "How the relationship changed",
      "dynamic": "stable|conflicted|shifting (optional)"
    }
  ],

  "threads": [
    {
      "type": "setup|callback|unresolved|cliffhanger",
      "description": "The thread",
      "urgency": "low|medium|high|immediate",
      "relatedCharacters": ["names"]
    }
  ],

  "surprises": [
    {
      "description": "What surprised vs the plan",
      "deviationType": "character_choice|plot_twist|new_element|tone_shift",
      "outlinePlanned": "What was supposed to happen",
      "actuallyHappened": "What was written instead"
    }
  ],

  "emergentThemes": ["Themes that emerged naturally"],
  "oneLineSummary": "Single sentence summary",
  "emotionalArc": "The emotional journey",
  "storyMomentum": "building|climaxing|resolving|transitioning",
  "immediateConsequences": ["Things that MUST be addressed next"],
  "unansweredQuestions": ["Questions readers now have"]"""

BOOK_EXTRACTION_ADDENDUM = """,

  "proseElements": {
    "narrativeVoice": "first_person|third_limited|third_omniscient|second_person",
    "internalMonologue": ["Key character thoughts revealed"],
    "sensoryDetails": ["Important sensory descriptions (sights, sounds, smells)"],
    "symbolism": ["Symbolic elements or metaphors used"],
    "foreshadowing": ["Potential setups or hints at future events"]
  },

  "chapterPacing": {
    "sceneCount": 3,
    "averageSceneLength": 800,
    "tensionCurve": ["rising", "plateau", "rising"],
    "cliffhangerStrength": "none|mild|moderate|strong"
  }
}

BOOK-SPECIFIC EXTRACTION RULES:
1. Track internal monologue - what characters think vs what they say matters
2. Note sensory details that establish atmosphere or could recur
3. Identify symbolism that could become thematic
4. Foreshadowing includes any setup that might pay off later
5. Tension curve shows how tension moves through the chapter
6. Cliffhanger strength affects how urgently next chapter must pick up

Respond with ONLY the JSON object, no additional text."""

COMIC_EXTRACTION_ADDENDUM = """,

  "pages": [
    {
      "pageNumber": 1,
      "panels": [
        {
          "panelNumber": 1,
          "description": "Visual description of what's shown",
          "characters": ["Character names visible"],
          "dialogue": ["Dialogue/caption text"],
          "visualFocus": "What draws the eye",
          "mood": "Panel mood/atmosphere"
        }
      ],
      "pageHook": "Cliffhanger or hook for page turn (null if none)",
      "visualFlow": "action|dialogue|emotional|establishing",
      "locationChanges": true/false,
      "causalBridge": {
        "pageEndedWith": "What key event or revelation ended this page",
        "nextPageMustShow": "What the next page MUST address as a result",
        "visualHook": "The visual that pulls readers to turn the page",
        "emotionalMomentum": "How the emotion carries forward"
      }
    }
  ],

  "visualConsistency": {
    "characterAppearances": [
      {
        "name": "Character name",
        "visualDetails": ["Hair color", "Costume/clothing", "Distinguishing features"],
        "lastSeenPage": 3
      }
    ],
    "recurringBackgrounds": ["Locations that appear multiple times"],
    "visualMotifs": ["Recurring visual elements or symbols"]
  },

  "panelCount": 18,
  "pageHooks": ["List of all page-turn hooks"]
}

COMIC-SPECIFIC EXTRACTION RULES:
1. Every page should ideally end with a hook (question, action, reveal)
2. Track character visual details for consistency across pages
3. Note visual motifs - symbols, colors, objects that recur
4. Panel descriptions should be clear enough for an artist
5. Visual flow indicates what type of page it is (action-heavy vs dialogue)
6. Location changes between panels affect pacing

=== CAUSAL BRIDGE (MANDATORY FOR EACH PAGE) ===
Comics connect pages with THEREFORE/BUT logic. AND THEN logic causes drift.

For each page, you MUST provide:
- pageEndedWith: The key visual/story moment that ended the page
- nextPageMustShow: What MUST happen on the next page as a result
- visualHook: The specific visual that makes readers turn the page
- emotionalMomentum: How the emotion transforms (e.g., "fear to determination")

EXAMPLE:
- pageEndedWith: "Maya sees her mentor's face among the enemy soldiers"
- nextPageMustShow: "Maya's confrontation with her mentor about the betrayal"
- visualHook: "Close-up of Maya's eyes wide, tears forming, mentor in reflection"
- emotionalMomentum: "Trust shatters into betrayal, then hardens into resolve"

This creates FORWARD MOMENTUM and prevents page loops.

Respond with ONLY the JSON object, no additional text."""

SCREENPLAY_EXTRACTION_ADDENDUM = """,

  "scenes": [
    {
      "sceneNumber": 1,
      "slugline": "INT. LOCATION - TIME",
      "location": "Location name",
      "timeOfDay": "DAY|NIGHT|DAWN|DUSK|CONTINUOUS",
      "characters": ["Characters in scene"],
      "purpose": "exposition|conflict|revelation|action|emotional",
      "dialogueHeavy": true/false,
      "visualActionLines": 5
    }
  ],

  "sequencePacing": {
    "dialogueToActionRatio": 0.6,
    "averageSceneLength": 2.5,
    "locationChangesPerSequence": 3,
    "visualMoments": ["Key visual beats to remember"]
  },

  "sceneCount": 5,
  "visualBeats": ["Memorable visual moments"]
}

SCREENPLAY-SPECIFIC EXTRACTION RULES:
1. Extract exact sluglines as written (INT./EXT. LOCATION - TIME)
2. Scene purpose: what role does this scene play in the sequence?
3. Dialogue-heavy scenes (>60% dialogue) need balance with visual scenes
4. Visual action lines = description paragraphs (not dialogue)
5. Visual beats are key images that tell the story without words
6. Track dialogue/action ratio for pacing analysis
7. Note time of day for continuity

Respond with ONLY the JSON object, no additional text."""
