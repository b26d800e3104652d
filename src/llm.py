import re

from openai import AsyncOpenAI

_LEADING_FENCE = re.compile(r"^```(?:csv)?\n?")
_TRAILING_FENCE = re.compile(r"```$")


def strip_code_fences(text):
    """Remove a surrounding ```csv ... ``` block and outer whitespace."""
    text = _LEADING_FENCE.sub("", text or "", count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


async def runsheet_extraction_llm(prompt, base64_pdf, mime_type, openai_client: AsyncOpenAI, model, filename="runsheet.pdf"):
    """Send one PDF chunk with the extraction prompt and return the model's raw text."""

    response = await openai_client.chat.completions.create(
        model=model,
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "file",
                        "file": {
                            "filename": filename,
                            "file_data": f"data:{mime_type};base64,{base64_pdf}",
                        },
                    },
                ],
            }
        ],
    )
    return response.choices[0].message.content or ""
