"""Prompts for the vision analyzers."""

TECHNICAL_PROMPT = """
Analyze this image's technical qualities and score (0-10) each:

1. clarity
    - 9-10: main subject tack sharp, intentional blur (if any) enhances composition
    - 7-8: main subject nearly perfect focus with minimal softness
    - 4-6: noticeable unintentional softness or blur on the main subject
    - 0-3: significant unintended blur, camera shake or noise
    Any unintentional blur scores 6 or below. Artistic background blur (bokeh)
    does not reduce the score when the subject is sharp.

2. lighting
    - 9-10: perfect exposure, full detail in shadows and highlights
    - 7-8: good exposure with minor issues
    - 4-6: under/overexposed but subject visible
    - 0-3: severe exposure problems

3. composition
    - 9-10: rule of thirds, leading lines, balance, proper headroom, clean edges
    - 7-8: good composition with minor issues
    - 4-6: basic composition, missing key elements
    - 0-3: poor composition, multiple issues

4. color
    - 9-10: excellent color accuracy, balance and harmony
    - 7-8: good color with minor issues
    - 4-6: noticeable color issues but acceptable
    - 0-3: major color problems

Return the four scores and a brief reasoning naming the compositional elements
present or missing.
"""

CONTENT_PROMPT = """
First assess technical quality: if the image is unintentionally blurry, poorly
exposed or technically flawed, no category can score above 6.5.

Then score (0-10):

1. subject_clarity: how clearly the main subjects read. Penalize zoomed-in
   portraits that lack detail. Do not penalize intentional bokeh.
2. composition: framing and subject placement. For selfies and group photos
   reward everyone being clearly visible; add 1.5 points for a selfie with two
   people and penalize selfies with just one person.
3. interest: significance of the moment or subject. Celebrations and genuine
   interactions score high; generic public performances score low unless
   something uniquely special is captured.
4. scene: lighting and environment together.

Technical quality must be considered in all scores. Be more forgiving of
images capturing a special moment, like blowing out birthday candles.

Also report whether the photo has people, is a group shot, is a selfie, and
whether people are the main subject.
"""

EMOTIONAL_PROMPT = """
Analyze this image's emotional impact and score (0-10):

1. atmosphere: emotional atmosphere or mood with a clear visual focus. Add one
   point for genuinely funny moments that stay visually clear.
2. connection: human connection or viewer resonance with good clarity.
3. impact: memorability; exceptional moments need technical excellence too.
4. poetry: artistic capture of a mood with technical excellence.

Also report whether the photo has people and whether it is humorous.
"""

SCREENING_PROMPT = """
Analyze this image for both content and quality. Check for:

1. Nudity (reject if present)
2. Focus/blur issues
3. Blank or near-blank images
4. Darkness/exposure problems
5. Low resolution
6. Orientation problems
7. Receipts
8. Presentation slides
9. Screenshots (including social media screenshots)
10. QR codes

Only reject for actual nudity (not swimwear or athletic wear) and clear
technical problems (not artistic choices). Use a null rejection reason when
the image is acceptable.
"""
