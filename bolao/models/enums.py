from enum import Enum


class MatchStatus(str, Enum):
    OPEN = "PALPITES"  # accepting predictions
    LOCKED = "FECHADO"  # predictions frozen, no result yet
    FINAL = "ENCERRADO"  # result recorded and scored


class Side(str, Enum):
    HOME = "CASA"
    AWAY = "FORA"


class Outcome(str, Enum):
    HOME = "CASA"
    AWAY = "FORA"
    DRAW = "EMPATE"


class ScoreType(str, Enum):
    EXACT_SCORE = "placar_exato"
    WINNER_SCORE = "placar_vencedor"
    GOAL_DIFFERENCE = "diferenca_gols"
    LOSER_SCORE = "placar_perdedor"
    WINNER = "vencedor_simples"
    DRAW = "empate"
    PENALTIES_ONLY = "penaltis_apenas"
    MISS = "errou"


class ChampionStatus(str, Enum):
    OPEN = "ABERTO"
    DEADLINE_PASSED = "PRAZO_ENCERRADO"
    RESULT_SET = "RESULTADO_DEFINIDO"
