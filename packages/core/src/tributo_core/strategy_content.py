"""Canned strategic content for the deterministic comparison path.

When the generation backend is unavailable, the report still needs a
roadmap, legal optimizations and a written rationale. This module holds a
fixed pool of that content. The pool is curated so that every roadmap
action label is unique (15 distinct tasks across the three points).

Text builders take the computed figures so the narrative quotes the same
numbers as the result it is attached to.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext

from .models import (
    BusinessSector,
    ImpactLevel,
    LegalOptimization,
    Recommendation,
    StrategicAction,
    StrategicPoint,
    TaxInput,
    TaxRates,
)

CENT = Decimal("0.01")


# =============================================================================
# ROADMAP POOL
# =============================================================================

ROADMAP_POOL: tuple[StrategicPoint, ...] = (
    StrategicPoint(
        title="REVISÃO DA CADEIA DE SUPRIMENTOS",
        description=(
            "Avaliar se os fornecedores atuais permitem a recuperação total "
            "de créditos de IBS/CBS e substituir os que travam o crédito."
        ),
        impact_level=ImpactLevel.HIGH,
        actions=[
            StrategicAction(
                task="Mapear os 20 maiores fornecedores",
                description="Listar os 20 principais fornecedores por volume de compras anual.",
                implementation="Extrair do ERP o ranking de compras dos últimos 12 meses por CNPJ.",
            ),
            StrategicAction(
                task="Levantar o regime tributário de cada parceiro",
                description=(
                    "Solicitar declaração formal de enquadramento tributário "
                    "(Simples vs. Lucro Real) de cada parceiro."
                ),
                implementation="Enviar questionário padrão e arquivar as respostas no cadastro do fornecedor.",
            ),
            StrategicAction(
                task="Identificar insumos com regimes especiais",
                description=(
                    "Mapear quais insumos possuem regimes especiais que podem "
                    "reduzir seu crédito (ex: ZFM ou isenções)."
                ),
                implementation="Cruzar NCMs das notas de entrada com a lista de regimes diferenciados.",
            ),
            StrategicAction(
                task="Calcular o custo real por fornecedor",
                description=(
                    "Comparar fornecedores informais com fornecedores que geram "
                    "crédito pleno, considerando o imposto recuperável."
                ),
                implementation="Montar planilha de custo líquido: preço menos crédito apropriável.",
            ),
            StrategicAction(
                task="Homologar fornecedores substitutos",
                description=(
                    "Iniciar a homologação de fornecedores que garantam o "
                    "repasse integral dos créditos."
                ),
                implementation="Abrir cotações com ao menos dois fornecedores alternativos por categoria crítica.",
            ),
        ],
    ),
    StrategicPoint(
        title="ADEQUAÇÃO DO ERP AO SPLIT PAYMENT",
        description=(
            "Preparar sistemas e fluxo de caixa para a liquidação automática "
            "do imposto no momento do pagamento."
        ),
        impact_level=ImpactLevel.MEDIUM,
        actions=[
            StrategicAction(
                task="Confirmar cronograma do fornecedor de ERP",
                description="Verificar o cronograma de atualização para o módulo de Split Payment.",
                implementation="Abrir chamado formal com o suporte do ERP e registrar a data prevista.",
            ),
            StrategicAction(
                task="Mapear o fluxo de caixa atual",
                description="Identificar o momento exato da segregação do imposto nos recebimentos.",
                implementation="Desenhar o fluxo de recebíveis por meio de pagamento (PIX, boleto, cartão).",
            ),
            StrategicAction(
                task="Parametrizar regras de IBS/CBS no motor fiscal",
                description="Configurar as novas regras de cálculo dentro do motor fiscal do software.",
                implementation="Cadastrar alíquotas, CST e classificação tributária por item.",
            ),
            StrategicAction(
                task="Homologar emissão de NF-e com retenção",
                description="Simular a liquidação com retenção automática do tributo antes da virada.",
                implementation="Emitir notas em ambiente de homologação e conferir os valores retidos.",
            ),
            StrategicAction(
                task="Treinar a equipe de conciliação bancária",
                description="Preparar o financeiro para conciliar extratos com valores líquidos recebidos.",
                implementation="Realizar oficina prática com extratos simulados de Split Payment.",
            ),
        ],
    ),
    StrategicPoint(
        title="REPRECIFICAÇÃO E CONTRATOS",
        description=(
            "Recalcular preços e revisar contratos para refletir o imposto "
            "por fora e o abatimento de créditos."
        ),
        impact_level=ImpactLevel.LOW,
        actions=[
            StrategicAction(
                task="Auditar a precificação atual",
                description="Isolar o imposto por dentro (PIS/COFINS/ICMS/ISS) embutido nos preços.",
                implementation="Decompor o preço de venda dos principais itens em custo, margem e tributo.",
            ),
            StrategicAction(
                task="Recalcular o markup por SKU",
                description="Refazer o markup de todos os itens considerando o abatimento dos créditos.",
                implementation="Atualizar a planilha de formação de preço com o custo líquido de crédito.",
            ),
            StrategicAction(
                task="Simular preço por fora para clientes B2B",
                description="Apresentar o preço líquido com o IBS/CBS destacado na nota.",
                implementation="Gerar tabela comparativa de preço antigo e novo para a equipe comercial.",
            ),
            StrategicAction(
                task="Comunicar a transparência tributária ao varejo",
                description="Ajustar a percepção de valor de clientes B2C com o imposto destacado.",
                implementation="Revisar etiquetas, site e materiais de venda com o novo destaque.",
            ),
            StrategicAction(
                task="Revisar cláusulas de reajuste contratual",
                description="Incluir gatilhos de reajuste baseados na variação da carga líquida.",
                implementation="Mapear contratos vigentes e negociar aditivos na próxima renovação.",
            ),
        ],
    ),
)


# =============================================================================
# LEGAL OPTIMIZATION POOL
# =============================================================================

LEGAL_OPTIMIZATION_POOL: tuple[LegalOptimization, ...] = (
    LegalOptimization(
        title="Gestão de Créditos de Insumos",
        how_to_implement=(
            "Certificar-se de que 100% dos fornecedores são emitentes de NF-e "
            "e estão em conformidade para repasse de crédito."
        ),
        benefit_expected="Redução direta do custo tributário sobre cada real comprado.",
    ),
    LegalOptimization(
        title="Homologação de Fornecedores com Crédito Pleno",
        how_to_implement=(
            "Priorizar fornecedores do regime regular de IBS/CBS nas compras "
            "recorrentes e renegociar preços com os que não geram crédito."
        ),
        benefit_expected="Aumento do volume de créditos apropriáveis sem elevar o gasto.",
    ),
    LegalOptimization(
        title="Formalização de Custos Operacionais",
        how_to_implement=(
            "Migrar energia, telecom e aluguéis para contratos com pessoa "
            "jurídica que emita documento fiscal com destaque do tributo."
        ),
        benefit_expected="Conversão de despesas fixas em créditos recuperáveis.",
    ),
    LegalOptimization(
        title="Controle de Perdas e Resíduos",
        how_to_implement=(
            "Documentar perdas de estoque e destinação de resíduos para "
            "preservar o crédito dos insumos efetivamente consumidos."
        ),
        benefit_expected="Evita estornos de crédito em fiscalizações.",
    ),
    LegalOptimization(
        title="Planejamento da Opção pelo Regime Híbrido",
        how_to_implement=(
            "Avaliar anualmente a opção de recolher IBS/CBS por fora do "
            "Simples quando a maior parte dos clientes for contribuinte."
        ),
        benefit_expected="Permite repassar crédito integral a clientes B2B e ganhar competitividade.",
    ),
)


_SECTOR_NOTES = {
    BusinessSector.COMMERCE: (
        "No comércio, o peso das mercadorias revendidas no custo total torna "
        "a cadeia de crédito o principal fator da decisão."
    ),
    BusinessSector.SERVICES: (
        "Em serviços, a folha de pagamento domina o custo e não gera crédito, "
        "o que limita o abatimento disponível no novo modelo."
    ),
    BusinessSector.INDUSTRY: (
        "Na indústria, insumos e energia geram crédito pleno e a "
        "não-cumulatividade tende a favorecer quem compra de fornecedores formais."
    ),
}


def roadmap() -> list[StrategicPoint]:
    """The canned roadmap: three points, HIGH to LOW, five actions each."""
    return list(ROADMAP_POOL)


def legal_optimizations(count: int) -> list[LegalOptimization]:
    """The first ``count`` canned legal optimizations."""
    if count < 0 or count > len(LEGAL_OPTIMIZATION_POOL):
        raise ValueError(
            f"count must be between 0 and {len(LEGAL_OPTIMIZATION_POOL)}, got {count}"
        )
    return list(LEGAL_OPTIMIZATION_POOL[:count])


def _cents(value: Decimal, spec: str) -> str:
    """Round half-up to cents and format; precision grows with the integer digits."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 4)
        return format(value.quantize(CENT, rounding=ROUND_HALF_UP), spec)


def format_brl(value: Decimal) -> str:
    """Format an amount as BRL currency text (R$ 1.234,56)."""
    formatted = _cents(value, ",.2f")
    return "R$ " + formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def format_percent(value: Decimal) -> str:
    """Format a percentage with two decimals and a comma separator."""
    return _cents(value, ".2f").replace(".", ",") + "%"


def build_analysis(
    tax_input: TaxInput,
    recommendation: Recommendation,
    simples_total: Decimal,
    reform_total: Decimal,
) -> str:
    """Rationale paragraph for the deterministic result."""
    if recommendation == Recommendation.REFORMA:
        verdict = (
            f"O modelo IBS/CBS resulta em {format_brl(reform_total)} mensais contra "
            f"{format_brl(simples_total)} no Simples: a não-cumulatividade permite "
            "que os créditos sobre insumos reduzam a carga final."
        )
    else:
        verdict = (
            f"O Simples Nacional permanece mais vantajoso, com {format_brl(simples_total)} "
            f"mensais contra {format_brl(reform_total)} estimados no modelo IBS/CBS, "
            "pois os créditos apropriáveis não compensam a alíquota cheia."
        )
    return (
        "A análise demonstra que a transição para o IBS/CBS altera a dinâmica "
        "competitiva. No modelo atual (Simples), o imposto incide sobre a receita "
        "bruta sem direito a créditos significativos. "
        f"{verdict} {_SECTOR_NOTES[tax_input.sector]}"
    )


def build_technical_details(
    rates: TaxRates,
    credits: Decimal,
    ibs_amount: Decimal,
    cbs_amount: Decimal,
) -> str:
    """Breakdown of the IBS/CBS computation for the deterministic result."""
    return (
        f"O CBS (Federal) e o IBS (Subnacional) somam {format_percent(rates.credit_rate_percent)}. "
        f"O diferencial está na apropriação de {format_brl(credits)} em créditos mensais. "
        f"Do valor líquido devido, {format_brl(ibs_amount)} correspondem ao IBS e "
        f"{format_brl(cbs_amount)} à CBS."
    )


def build_decision_drivers(
    tax_input: TaxInput,
    credits: Decimal,
    effective_rate_simples: Decimal,
    effective_rate_reform: Decimal,
) -> list[str]:
    """Four short statements explaining what drove the recommendation."""
    revenue = tax_input.monthly_revenue
    input_share = tax_input.creditable_inputs / revenue * 100
    payroll_share = tax_input.payroll / revenue * 100
    return [
        f"Compras e custos creditáveis equivalem a {format_percent(input_share)} da receita",
        f"Créditos mensais estimados de {format_brl(credits)}",
        (
            f"Alíquota efetiva de {format_percent(effective_rate_simples)} no Simples contra "
            f"{format_percent(effective_rate_reform)} no IBS/CBS"
        ),
        f"Folha de pagamento sem crédito representa {format_percent(payroll_share)} da receita",
    ]
