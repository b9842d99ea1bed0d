MAX_SPEAKERS = 10

TRANSCRIPTION_PROMPT = f"""Please transcribe this audio file with speaker detection capabilities. Follow these requirements:

1. **Speaker Detection**: Analyze the audio to determine how many different speakers are present (limit: {MAX_SPEAKERS} speakers max)
2. **Output Format**: Provide the response in this exact JSON structure:
{{
  "speakerCount": [number of speakers detected],
  "hasSpeakerDiarization": [true if multiple speakers detected, false if single speaker],
  "regularTranscription": "[clean transcription without speaker labels in markdown format]",
  "speakerTranscription": "[transcription with speaker labels like **Speaker 1:** Hello **Speaker 2:** Hi there]",
  "speakerMetadata": {{
    "speakers": [
      {{"id": "Speaker 1", "segments": [{{"start": "approximate timestamp", "text": "what they said"}}]}},
      {{"id": "Speaker 2", "segments": [{{"start": "approximate timestamp", "text": "what they said"}}]}}
    ],
    "confidence": "high/medium/low"
  }}
}}

3. **Speaker Labeling**: Use "Speaker 1", "Speaker 2", etc. for different voices
4. **Single Speaker**: If only one speaker detected, set hasSpeakerDiarization to false and speakerTranscription to null
5. **Quality**: Focus on accuracy - if unsure about speaker changes, be conservative

Return ONLY the JSON response, no additional text."""
